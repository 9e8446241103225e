from __future__ import annotations

import copy
import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

from yieldsched.api.structured_logging import log_event
from yieldsched.ledger.migrations import CURRENT_STATE_VERSION, migrate_state_dict
from yieldsched.ledger.state import LedgerView
from yieldsched.ledger.types import BonusSchedule, Pool, Stake
from yieldsched.runtime import reports
from yieldsched.runtime.chain_config import EngineConfig, default_engine_config, engine_params
from yieldsched.runtime.clock import Clock, SystemClock, day_of_week
from yieldsched.runtime.clock import is_weekend as _is_weekend
from yieldsched.runtime.domain_dispatch import apply_tx
from yieldsched.runtime.errors import INVALID_PAYLOAD, INVARIANT_VIOLATION, ApplyError
from yieldsched.runtime.metrics import record_applied, record_ledger, record_rejected
from yieldsched.runtime.sigverify import signatures_required
from yieldsched.runtime.sqlite_db import SqliteDB, SqliteLedgerStore
from yieldsched.runtime.state_invariants import ensure_state, ledger_violations
from yieldsched.runtime.tx_admission import admit_tx
from yieldsched.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]
EventObserver = Callable[[Json], None]

log = logging.getLogger("yieldsched.executor")

# In-memory receipt log size when no database is configured.
MEMORY_RECEIPTS_MAX = 1000


def _safe_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _pool_id_of(tx: TxEnvelope, events: List[Json]) -> Optional[int]:
    for ev in events:
        if "pool_id" in ev:
            return _safe_int(ev["pool_id"], 0)
    pid = tx.payload.get("pool_id")
    return None if pid is None else _safe_int(pid, 0)


class ExecutorError(RuntimeError):
    pass


class StakingExecutor:
    """Single-writer owner of the staking ledger.

    Every state-transition call is admitted, applied to a deep copy of the
    committed state, checked against the ledger invariants and only then
    swapped in (and persisted, when a database is configured). A failed call
    leaves state untouched.
    """

    def __init__(
        self,
        *,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
        db_path: Optional[str] = None,
    ) -> None:
        self.config = config or default_engine_config()
        self.chain_id = str(self.config.chain_id)
        self.clock: Clock = clock or SystemClock()

        self._lock = threading.RLock()
        self._observers: List[EventObserver] = []
        self._memory_receipts: Deque[Json] = deque(maxlen=MEMORY_RECEIPTS_MAX)

        path = self.config.db_path if db_path is None else db_path
        self.db_path = str(path or "").strip()
        self._store: Optional[SqliteLedgerStore] = None
        if self.db_path:
            self._store = SqliteLedgerStore(db=SqliteDB(path=self.db_path))

        if self._store is not None and self._store.exists():
            self.state = self._load_persisted(self._store.read())
        else:
            self.state = self._initial_state()
            if self._store is not None:
                self._store.write(self.state)

        record_ledger(height=self.height, stats=LedgerView.from_ledger(self.state).protocol_stats().to_json())

    def _initial_state(self) -> Json:
        st: Json = {
            "state_version": CURRENT_STATE_VERSION,
            "chain_id": self.chain_id,
            "height": 0,
            "last_ts": 0,
            "params": engine_params(self.config),
            "pools": {},
            "next_pool_id": 1,
            "stakes": {},
            "schedules": {},
            "nonces": {},
            "created_ms": int(time.time() * 1000),
        }
        return ensure_state(st)

    def _load_persisted(self, raw: Json) -> Json:
        st = ensure_state(migrate_state_dict(raw))

        st_chain_id = str(st.get("chain_id") or "").strip()
        if st_chain_id and st_chain_id != self.chain_id:
            raise ExecutorError(
                f"chain_id mismatch: db={st_chain_id!r} executor={self.chain_id!r}. Refuse to start."
            )
        st["chain_id"] = self.chain_id

        # Persisted params win; keys the snapshot predates are filled from config.
        params = st["params"]
        for k, v in engine_params(self.config).items():
            if k not in params or params.get(k) in (None, ""):
                params[k] = v

        violations = ledger_violations(st)
        if violations:
            raise ExecutorError(f"db_invariant_violation: {violations[0]}. Refuse to start.")
        return st

    # ----------------------------
    # Observers
    # ----------------------------

    def add_observer(self, fn: EventObserver) -> None:
        with self._lock:
            self._observers.append(fn)

    def remove_observer(self, fn: EventObserver) -> None:
        with self._lock:
            if fn in self._observers:
                self._observers.remove(fn)

    def _notify(self, events: List[Json]) -> None:
        for ev in events:
            for fn in list(self._observers):
                try:
                    fn(copy.deepcopy(ev))
                except Exception:
                    # The call is already committed; an observer cannot undo it.
                    log.exception("event observer failed event=%s", ev.get("event"))

    # ----------------------------
    # State-transition calls
    # ----------------------------

    def read_state(self) -> Json:
        with self._lock:
            return copy.deepcopy(self.state)

    @property
    def height(self) -> int:
        return _safe_int(self.state.get("height"), 0)

    def submit_tx(self, env: Any) -> Json:
        """Admit, apply and commit one call. Always returns a receipt."""
        with self._lock:
            if isinstance(env, TxEnvelope):
                raw = env.to_json()
            elif isinstance(env, dict):
                raw = env
            else:
                return self._reject(None, ApplyError(INVALID_PAYLOAD, "envelope_must_be_object"), persist=False)

            verdict = admit_tx(raw, self.state)
            if not verdict.ok:
                return self._reject(raw, ApplyError(verdict.code, verdict.reason, verdict.details), persist=False)

            tx = TxEnvelope.from_json(raw)
            working: Json = copy.deepcopy(self.state)
            now = max(int(self.clock.now()), _safe_int(working.get("last_ts"), 0))
            working["last_ts"] = now

            try:
                meta = apply_tx(working, tx)
                violations = ledger_violations(working)
                if violations:
                    raise ApplyError(INVARIANT_VIOLATION, "ledger_invariant_broken", {"violations": violations})
            except ApplyError as e:
                # A signed call is spent even when the engine refuses it, so the
                # same envelope cannot be replayed once the state would allow it.
                spent: Optional[Json] = None
                if signatures_required(self.state):
                    spent = copy.deepcopy(self.state)
                    spent.setdefault("nonces", {})[tx.signer] = int(tx.nonce)
                return self._reject(raw, e, persist=True, spent_state=spent)

            working["height"] = _safe_int(working.get("height"), 0) + 1
            if signatures_required(working):
                working.setdefault("nonces", {})[tx.signer] = int(tx.nonce)

            events = list(meta.get("events") or [])
            receipt: Json = {
                "ok": True,
                "tx_type": tx.tx_type,
                "signer": tx.signer,
                "height": working["height"],
                "at": now,
                "result": meta.get("result"),
                "events": events,
            }

            if self._store is not None:
                self._store.commit(working, receipt)
            else:
                self._memory_receipts.append(copy.deepcopy(receipt))
            self.state = working

            pool_id = _pool_id_of(tx, events)
            record_applied(tx.tx_type, pool_id)
            record_ledger(height=int(working["height"]), stats=LedgerView.from_ledger(working).protocol_stats().to_json())
            log_event(
                log,
                "tx_applied",
                tx_type=tx.tx_type,
                signer=tx.signer,
                pool_id=pool_id,
                height=int(working["height"]),
                at=now,
                result=meta.get("result"),
            )

        self._notify(events)
        return receipt

    def _reject(
        self,
        raw: Optional[Json],
        err: ApplyError,
        *,
        persist: bool,
        spent_state: Optional[Json] = None,
    ) -> Json:
        tx_type = str((raw or {}).get("tx_type") or "").strip().upper()
        signer = str((raw or {}).get("signer") or "").strip()
        receipt: Json = {
            "ok": False,
            "tx_type": tx_type,
            "signer": signer,
            "code": str(err.code),
            "reason": str(err.reason),
            "details": err.details,
        }
        if err.legacy_code is not None:
            receipt["legacy_code"] = err.legacy_code
        if spent_state is not None:
            receipt["nonce_spent"] = _safe_int(spent_state["nonces"].get(signer), 0)

        if persist:
            if self._store is not None:
                if spent_state is not None:
                    # Only the nonce changed; height stays where it was.
                    self._store.commit(spent_state, receipt)
                else:
                    self._store.append_receipt(height=self.height, receipt=receipt)
            else:
                self._memory_receipts.append(copy.deepcopy(receipt))
            if spent_state is not None:
                self.state = spent_state

        record_rejected(tx_type, err.code)
        log_event(log, "tx_rejected", tx_type=tx_type, signer=signer, code=str(err.code), reason=str(err.reason))
        return receipt

    def recent_receipts(self, *, limit: int = 50) -> List[Json]:
        lim = max(1, min(int(limit), MEMORY_RECEIPTS_MAX))
        if self._store is not None:
            return self._store.recent_receipts(limit=lim)
        with self._lock:
            return [copy.deepcopy(r) for r in reversed(self._memory_receipts)][:lim]

    # ----------------------------
    # Read-only queries
    # ----------------------------

    def _view(self) -> LedgerView:
        with self._lock:
            return LedgerView.from_ledger(self.state)

    def get_current_time(self) -> int:
        """Logical now: the clock, but never earlier than the last committed call."""
        with self._lock:
            return max(int(self.clock.now()), _safe_int(self.state.get("last_ts"), 0))

    def get_day_of_week(self, ts: Optional[int] = None) -> int:
        return day_of_week(self.get_current_time() if ts is None else int(ts))

    def is_weekend(self, ts: Optional[int] = None) -> bool:
        return _is_weekend(self.get_current_time() if ts is None else int(ts))

    def get_protocol_stats(self) -> Json:
        return self._view().protocol_stats().to_json()

    def get_pool(self, pool_id: int) -> Optional[Pool]:
        return self._view().get_pool(pool_id)

    def get_stake(self, pool_id: int, staker: str) -> Optional[Stake]:
        return self._view().get_stake(pool_id, staker)

    def list_bonus_schedules(self, pool_id: int) -> List[BonusSchedule]:
        return self._view().get_schedules(pool_id)

    def calculate_pending_rewards(self, pool_id: int, staker: str) -> int:
        return reports.pending_for(self._view(), pool_id, staker, now=self.get_current_time())

    def get_current_multiplier(self, pool_id: int, staker: Optional[str] = None) -> int:
        return reports.multiplier_for(self._view(), pool_id, now=self.get_current_time(), staker=staker)

    def get_multiplier_source(self, pool_id: int, staker: Optional[str] = None) -> Optional[int]:
        """Index of the bonus schedule behind the current multiplier, if any."""
        return reports.multiplier_source_for(self._view(), pool_id, now=self.get_current_time(), staker=staker)[1]

    def generate_pool_status(self, pool_id: int) -> str:
        return reports.generate_pool_status(self._view(), pool_id, now=self.get_current_time())

    def generate_stake_info(self, pool_id: int, staker: str) -> str:
        return reports.generate_stake_info(self._view(), pool_id, staker, now=self.get_current_time())


__all__ = ["EventObserver", "ExecutorError", "StakingExecutor"]
