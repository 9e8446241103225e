# src/yieldsched/runtime/sqlite_db.py
from __future__ import annotations

import json
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    """Canonical JSON encoding.

    Non-JSON types must fail here rather than be coerced into the snapshot.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except Exception:
        return int(default)


class SqliteDB:
    """SQLite manager for the staking engine.

    Design goals:
      - single durable DB file for ledger snapshot + receipts
      - cross-thread safe by never sharing connections

    SQLite allows only one writer at a time; BEGIN IMMEDIATE can transiently
    fail with "database is locked", so write_tx() retries within a deadline.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def _sqlite_synchronous_pragma() -> str:
        """Return a safe PRAGMA synchronous value.

        Defaults:
          - prod        -> FULL
          - dev/testnet -> NORMAL

        Override with YIELDSCHED_SQLITE_SYNCHRONOUS in {OFF,NORMAL,FULL,EXTRA}.
        """
        mode = (os.environ.get("YIELDSCHED_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        raw = (os.environ.get("YIELDSCHED_SQLITE_SYNCHRONOUS") or default).strip().upper()

        if raw not in {"OFF", "NORMAL", "FULL", "EXTRA"}:
            raw = default
        return raw

    def ensure_parent_dir(self) -> None:
        p = Path(self.path)
        p.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        self.ensure_parent_dir()

        connect_timeout_s = float(_env_int("YIELDSCHED_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0

        con = sqlite3.connect(
            self.path,
            timeout=connect_timeout_s,
            isolation_level=None,  # we manage BEGIN/COMMIT ourselves
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        # WAL is required unless explicitly waived.
        allow_non_wal = (os.environ.get("YIELDSCHED_SQLITE_ALLOW_NON_WAL") or "").strip() in {"1", "true", "TRUE"}
        try:
            row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
            mode = ""
            if row is not None:
                mode = str(row[0]).strip().lower()
            if mode and mode != "wal" and not allow_non_wal:
                raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")
        except Exception:
            if not allow_non_wal:
                con.close()
                raise

        con.execute(f"PRAGMA synchronous={self._sqlite_synchronous_pragma()};")
        con.execute("PRAGMA foreign_keys=ON;")
        con.execute("PRAGMA temp_store=MEMORY;")

        wal_ckpt = max(1, _env_int("YIELDSCHED_SQLITE_WAL_AUTOCHECKPOINT", 1000))
        con.execute(f"PRAGMA wal_autocheckpoint={wal_ckpt};")

        busy_ms = max(0, _env_int("YIELDSCHED_SQLITE_BUSY_TIMEOUT_MS", int(connect_timeout_s * 1000)))
        con.execute(f"PRAGMA busy_timeout={busy_ms};")

        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS ledger_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  height INTEGER NOT NULL,
                  last_ts INTEGER NOT NULL,
                  state_json TEXT NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS receipts (
                  seq INTEGER PRIMARY KEY AUTOINCREMENT,
                  height INTEGER NOT NULL,
                  tx_type TEXT NOT NULL,
                  signer TEXT NOT NULL,
                  ok INTEGER NOT NULL,
                  receipt_json TEXT NOT NULL,
                  created_ts_ms INTEGER NOT NULL
                );
                """
            )
            con.execute("CREATE INDEX IF NOT EXISTS idx_receipts_signer ON receipts(signer);")
            con.execute("CREATE INDEX IF NOT EXISTS idx_receipts_ok ON receipts(ok, seq);")

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            else:
                try:
                    v = int(str(row["value"]))
                except Exception:
                    v = 0
                if v != self.SCHEMA_VERSION:
                    raise RuntimeError(
                        f"sqlite schema_version mismatch: have={v} want={self.SCHEMA_VERSION}. "
                        "Refuse to start to avoid corrupting data."
                    )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            try:
                con.close()
            except Exception:
                pass

    @staticmethod
    def _is_locked_error(e: Exception) -> bool:
        msg = str(e).lower()
        return ("database is locked" in msg) or ("database is busy" in msg) or ("locked" in msg and "database" in msg)

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction with bounded retry on writer-lock contention.

        Policy:
          - retry BEGIN IMMEDIATE until a deadline
          - exponential backoff with jitter
          - then raise (fail closed) if we cannot acquire within deadline
        """
        deadline_ms = max(250, _env_int("YIELDSCHED_SQLITE_WRITE_DEADLINE_MS", 30_000))
        deadline_ts = _now_ms() + deadline_ms

        base_sleep = max(0.001, float(_env_int("YIELDSCHED_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0)
        max_sleep = max(base_sleep, float(_env_int("YIELDSCHED_SQLITE_WRITE_BACKOFF_MAX_MS", 250)) / 1000.0)

        def _backoff(attempt: int) -> None:
            sleep_s = min(max_sleep, base_sleep * (2.0 ** min(attempt, 8)))
            time.sleep(sleep_s * (0.5 + random.random()))

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                        raise
                    _backoff(attempt)
                    attempt += 1

            try:
                yield con

                c_attempt = 0
                while True:
                    try:
                        con.execute("COMMIT;")
                        break
                    except sqlite3.OperationalError as e:
                        if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                            raise
                        _backoff(c_attempt)
                        c_attempt += 1
            except Exception:
                try:
                    con.execute("ROLLBACK;")
                except Exception:
                    pass
                raise


class SqliteLedgerStore:
    """Ledger snapshot + receipt log persisted in SQLite.

    The authoritative snapshot is a single row; each committed call appends
    one receipt row keyed by the height it produced. Rejected calls are kept
    too, but only the newest YIELDSCHED_MAX_REJECTED_RECEIPTS of them.
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()
        self.max_rejected = max(1, _env_int("YIELDSCHED_MAX_REJECTED_RECEIPTS", 1000))

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM ledger_state WHERE id=1;").fetchone() is not None

    def read(self) -> Json:
        with self._db.connection() as con:
            row = con.execute("SELECT state_json FROM ledger_state WHERE id=1;").fetchone()
            if row is None:
                raise FileNotFoundError("sqlite ledger_state is missing")
            st = json.loads(str(row["state_json"]))
            if not isinstance(st, dict):
                raise ValueError("ledger_state is not a JSON object")
            return st

    @staticmethod
    def _upsert_state(con: sqlite3.Connection, st: Json) -> None:
        con.execute(
            """
            INSERT INTO ledger_state(id, height, last_ts, state_json, updated_ts_ms)
            VALUES(1, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
              height=excluded.height,
              last_ts=excluded.last_ts,
              state_json=excluded.state_json,
              updated_ts_ms=excluded.updated_ts_ms;
            """,
            (int(st.get("height", 0)), int(st.get("last_ts", 0)), _canon_json(st), _now_ms()),
        )

    def write(self, st: Json) -> None:
        if not isinstance(st, dict):
            raise ValueError("ledger write expects dict")
        with self._db.write_tx() as con:
            self._upsert_state(con, st)

    @staticmethod
    def _insert_receipt(con: sqlite3.Connection, height: int, receipt: Json) -> None:
        con.execute(
            """
            INSERT INTO receipts(height, tx_type, signer, ok, receipt_json, created_ts_ms)
            VALUES(?, ?, ?, ?, ?, ?);
            """,
            (
                int(height),
                str(receipt.get("tx_type") or ""),
                str(receipt.get("signer") or ""),
                1 if receipt.get("ok") else 0,
                _canon_json(receipt),
                _now_ms(),
            ),
        )

    def _prune_rejected(self, con: sqlite3.Connection) -> None:
        con.execute(
            """
            DELETE FROM receipts WHERE ok=0 AND seq <= (
              SELECT seq FROM receipts WHERE ok=0 ORDER BY seq DESC LIMIT 1 OFFSET ?
            );
            """,
            (int(self.max_rejected),),
        )

    def commit(self, st: Json, receipt: Optional[Json] = None) -> None:
        """Persist the snapshot and (optionally) its receipt in one transaction."""
        if not isinstance(st, dict):
            raise ValueError("ledger commit expects dict")
        with self._db.write_tx() as con:
            self._upsert_state(con, st)
            if isinstance(receipt, dict):
                self._insert_receipt(con, int(st.get("height", 0)), receipt)
                if not receipt.get("ok"):
                    self._prune_rejected(con)

    def append_receipt(self, *, height: int, receipt: Json) -> None:
        """Record a receipt without touching the snapshot (rejected calls)."""
        with self._db.write_tx() as con:
            self._insert_receipt(con, height, receipt)
            if not receipt.get("ok"):
                self._prune_rejected(con)

    def recent_receipts(self, *, limit: int = 50) -> List[Json]:
        lim = max(1, min(int(limit), 1000))
        with self._db.connection() as con:
            rows = con.execute(
                "SELECT seq, height, receipt_json FROM receipts ORDER BY seq DESC LIMIT ?;",
                (lim,),
            ).fetchall()
        out: List[Json] = []
        for r in rows:
            rec = json.loads(str(r["receipt_json"]))
            if isinstance(rec, dict):
                rec["seq"] = int(r["seq"])
                rec["height"] = int(r["height"])
                out.append(rec)
        return out
