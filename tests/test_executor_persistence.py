from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest
from conftest import ADMIN, DAY, T0

from yieldsched.runtime.chain_config import default_engine_config
from yieldsched.runtime.clock import ManualClock
from yieldsched.runtime.executor import ExecutorError, StakingExecutor
from yieldsched.runtime.sqlite_db import SqliteDB


def _mk(db_path: str, clock: ManualClock, **cfg_overrides) -> StakingExecutor:
    cfg = replace(default_engine_config(), db_path=db_path, **cfg_overrides)
    return StakingExecutor(config=cfg, clock=clock)


def _submit(ex: StakingExecutor, tx_type: str, signer: str, **payload):
    return ex.submit_tx({"tx_type": tx_type, "signer": signer, "payload": payload})


def test_state_survives_restart(tmp_path: Path) -> None:
    db_path = str(tmp_path / "ledger.db")
    clock = ManualClock(start=T0)

    ex = _mk(db_path, clock)
    assert _submit(ex, "CREATE_POOL", ADMIN, name="Main", reward_rate_bps=500, schedule_type=0, initial_rewards=1000)["ok"]
    assert _submit(ex, "STAKE", "alice", pool_id=1, amount=1000)["ok"]
    clock.advance(DAY)
    before = ex.read_state()

    ex2 = _mk(db_path, clock)
    assert ex2.read_state() == before
    assert ex2.height == 2
    assert ex2.calculate_pending_rewards(1, "alice") == 50

    # The restarted engine keeps allocating from where it left off.
    r = _submit(ex2, "CREATE_POOL", ADMIN, name="Second", reward_rate_bps=1, schedule_type=0)
    assert r["result"] == 2


def test_chain_id_mismatch_refuses_to_start(tmp_path: Path) -> None:
    db_path = str(tmp_path / "ledger.db")
    clock = ManualClock(start=T0)
    _mk(db_path, clock)

    with pytest.raises(ExecutorError, match="chain_id mismatch"):
        _mk(db_path, clock, chain_id="some-other-chain")


def test_persisted_params_win_over_config(tmp_path: Path) -> None:
    db_path = str(tmp_path / "ledger.db")
    clock = ManualClock(start=T0)
    _mk(db_path, clock)

    ex = _mk(db_path, clock, admin="new-admin", time_unit_seconds=3600)
    st = ex.read_state()
    assert st["params"]["admin"] == ADMIN
    assert st["params"]["time_unit_seconds"] == DAY


def test_corrupt_snapshot_refuses_to_start(tmp_path: Path) -> None:
    db_path = str(tmp_path / "ledger.db")
    clock = ManualClock(start=T0)
    ex = _mk(db_path, clock)
    _submit(ex, "CREATE_POOL", ADMIN, name="Main", reward_rate_bps=500, schedule_type=0)
    _submit(ex, "STAKE", "alice", pool_id=1, amount=1000)

    st = ex.read_state()
    st["pools"]["1"]["total_staked"] = 5
    db = SqliteDB(path=db_path)
    with db.write_tx() as con:
        con.execute("UPDATE ledger_state SET state_json=? WHERE id=1;", (json.dumps(st),))

    with pytest.raises(ExecutorError, match="db_invariant_violation"):
        _mk(db_path, clock)


def test_receipts_include_rejections_newest_first(tmp_path: Path) -> None:
    db_path = str(tmp_path / "ledger.db")
    ex = _mk(db_path, ManualClock(start=T0))

    _submit(ex, "CREATE_POOL", ADMIN, name="Main", reward_rate_bps=500, schedule_type=0, min_stake=100)
    _submit(ex, "STAKE", "alice", pool_id=1, amount=5)
    # Admission rejections never reach the log.
    _submit(ex, "MINT", "alice")

    items = ex.recent_receipts(limit=10)
    assert [(r["tx_type"], r["ok"]) for r in items] == [("STAKE", False), ("CREATE_POOL", True)]
    assert items[0]["code"] == "insufficient_stake"
    assert items[0]["legacy_code"] == 8003
    assert items[0]["height"] == 1

    # Rejections leave the snapshot alone.
    assert ex.height == 1
    assert _mk(db_path, ManualClock(start=T0)).height == 1


def test_in_memory_receipts_are_bounded(executor, call) -> None:
    from yieldsched.runtime import executor as executor_mod

    for _ in range(5):
        call("FUND_REWARDS_POOL", "bob", pool_id=1, amount=1)
    items = executor.recent_receipts(limit=3)
    assert len(items) == 3
    assert all(r["code"] == "pool_not_found" for r in items)
    assert executor_mod.MEMORY_RECEIPTS_MAX == 1000


def test_rejections_do_not_grow_the_receipt_table(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("YIELDSCHED_MAX_REJECTED_RECEIPTS", "2")
    ex = _mk(str(tmp_path / "ledger.db"), ManualClock(start=T0))

    _submit(ex, "CREATE_POOL", ADMIN, name="Main", reward_rate_bps=500, schedule_type=0)
    for _ in range(10):
        _submit(ex, "FUND_REWARDS_POOL", "bob", pool_id=9, amount=1)

    items = ex.recent_receipts(limit=100)
    assert [(r["tx_type"], r["ok"]) for r in items] == [
        ("FUND_REWARDS_POOL", False),
        ("FUND_REWARDS_POOL", False),
        ("CREATE_POOL", True),
    ]
