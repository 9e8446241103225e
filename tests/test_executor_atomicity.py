from __future__ import annotations

from conftest import ADMIN, DAY, T0

from yieldsched.runtime import executor as executor_mod
from yieldsched.runtime.errors import ApplyError
from yieldsched.runtime.metrics import reset, snapshot


def test_failed_call_leaves_state_untouched(executor, call, make_pool) -> None:
    pid = make_pool()
    call("STAKE", "alice", pool_id=pid, amount=1000)
    before = executor.read_state()

    for tx_type, signer, payload in (
        ("UNSTAKE", "alice", {"pool_id": pid, "amount": 5000}),
        ("CLAIM_REWARDS", "alice", {"pool_id": pid}),
        ("SET_POOL_ACTIVE", "alice", {"pool_id": pid, "active": False}),
        ("STAKE", "alice", {"pool_id": pid, "amount": "1000"}),
        ("FLY", "alice", {}),
    ):
        r = executor.submit_tx({"tx_type": tx_type, "signer": signer, "payload": payload})
        assert r["ok"] is False, tx_type
        assert executor.read_state() == before


def test_invariant_violation_discards_the_working_copy(executor, call, make_pool, monkeypatch) -> None:
    pid = make_pool()
    call("STAKE", "alice", pool_id=pid, amount=1000)
    before = executor.read_state()

    real_apply = executor_mod.apply_tx

    def _corrupting_apply(state, env):
        out = real_apply(state, env)
        state["pools"][str(pid)]["total_staked"] += 1
        return out

    monkeypatch.setattr(executor_mod, "apply_tx", _corrupting_apply)

    r = call("FUND_REWARDS_POOL", "bob", pool_id=pid, amount=10)
    assert r["ok"] is False
    assert r["code"] == "invariant_violation"
    assert r["details"]["violations"]
    assert executor.read_state() == before


def test_unexpected_applier_errors_are_wrapped(executor, make_pool, monkeypatch) -> None:
    from yieldsched.runtime import domain_dispatch

    def _boom(state, env):
        raise ZeroDivisionError("nope")

    monkeypatch.setattr(domain_dispatch, "_APPLIERS", (_boom,))
    r = executor.submit_tx({"tx_type": "STAKE", "signer": "alice", "payload": {"pool_id": 1, "amount": 1}})
    assert r["ok"] is False
    assert r["code"] == "domain_error"
    assert r["reason"] == "ZeroDivisionError"


def test_apply_errors_are_plain_exceptions() -> None:
    e = ApplyError("no_rewards", "nothing_accrued", {"pool_id": 1})
    assert isinstance(e, Exception)
    assert e.legacy_code == 8005
    assert ApplyError("bad_nonce", "x").legacy_code is None


def test_logical_time_never_goes_backwards(executor, clock, call, make_pool) -> None:
    pid = make_pool()
    clock.advance(DAY)
    call("STAKE", "alice", pool_id=pid, amount=1000)
    committed = executor.read_state()["last_ts"]
    assert committed == T0 + DAY

    clock.set(T0)
    assert executor.get_current_time() == committed

    r = call("STAKE", "alice", pool_id=pid, amount=100)
    assert r["at"] == committed
    assert executor.get_stake(pid, "alice").last_accrual_time == committed


def test_height_counts_committed_calls_only(executor, call, make_pool) -> None:
    assert executor.height == 0
    pid = make_pool()
    call("STAKE", "alice", pool_id=pid, amount=1)  # below min_stake
    call("STAKE", "alice", pool_id=pid, amount=500)
    assert executor.height == 2


def test_metrics_count_by_tx_type_code_and_pool(executor, call, make_pool) -> None:
    reset()
    pid = make_pool()
    call("STAKE", "alice", pool_id=pid, amount=500)
    call("CLAIM_REWARDS", "alice", pool_id=pid)
    call("STAKE", "bob", pool_id=pid, amount=1)
    call("NOPE", ADMIN)

    snap = snapshot()
    assert snap["applied_total"] == 2
    assert snap["rejected_total"] == 3
    assert snap["applied_by_tx_type"] == {"CREATE_POOL": 1, "STAKE": 1}
    assert snap["applied_by_pool"] == {str(pid): 2}
    assert snap["rejected_by_tx_type"] == {"CLAIM_REWARDS": 1, "STAKE": 1, "NOPE": 1}
    assert snap["rejected_by_code"] == {"no_rewards": 1, "insufficient_stake": 1, "tx_unimplemented": 1}
    assert snap["ledger"] == {
        "height": 2,
        "total_pools": 1,
        "active_pools": 1,
        "total_staked": 500,
        "total_rewards_balance": 1_000_000,
    }
