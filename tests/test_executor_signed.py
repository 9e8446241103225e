from __future__ import annotations

import pytest
from conftest import T0

from yieldsched.runtime.chain_config import EngineConfig
from yieldsched.runtime.clock import ManualClock
from yieldsched.runtime.executor import StakingExecutor
from yieldsched.testing.sigtools import pubkey_for, sign_tx_dict


@pytest.fixture
def signed_executor() -> StakingExecutor:
    cfg = EngineConfig(
        chain_id="yieldsched-test",
        mode="testnet",
        admin="admin",
        db_path="",
        time_unit_seconds=86_400,
        require_signatures=True,
        principal_keys={"admin": pubkey_for("admin")},
    )
    return StakingExecutor(config=cfg, clock=ManualClock(start=T0))


def _signed(tx_type: str, signer: str, nonce: int, label: str, **payload):
    return sign_tx_dict({"tx_type": tx_type, "signer": signer, "nonce": nonce, "payload": payload}, label=label)


def test_signed_calls_apply_and_advance_nonce(signed_executor: StakingExecutor) -> None:
    ex = signed_executor
    alice = pubkey_for("alice")

    r = ex.submit_tx(_signed("CREATE_POOL", "admin", 1, "admin", name="Main", reward_rate_bps=500, schedule_type=0))
    assert r["ok"] is True, r

    r2 = ex.submit_tx(_signed("STAKE", alice, 1, "alice", pool_id=1, amount=1000))
    assert r2["ok"] is True, r2

    nonces = ex.read_state()["nonces"]
    assert nonces == {"admin": 1, alice: 1}

    # Replaying the same signed call is stale.
    replay = ex.submit_tx(_signed("STAKE", alice, 1, "alice", pool_id=1, amount=1000))
    assert replay["code"] == "bad_nonce"
    assert ex.get_stake(1, alice).amount == 1000


def test_domain_rejection_spends_nonce(signed_executor: StakingExecutor) -> None:
    ex = signed_executor
    bob = pubkey_for("bob")

    r = ex.submit_tx(_signed("CLAIM_REWARDS", bob, 1, "bob", pool_id=1))
    assert r["code"] == "pool_not_found"
    assert r["nonce_spent"] == 1
    assert ex.read_state()["nonces"][bob] == 1
    assert ex.height == 0

    ex.submit_tx(_signed("CREATE_POOL", "admin", 1, "admin", name="Main", reward_rate_bps=500, schedule_type=0, min_stake=0))
    stale = ex.submit_tx(_signed("STAKE", bob, 1, "bob", pool_id=1, amount=10))
    assert stale["code"] == "bad_nonce"

    r2 = ex.submit_tx(_signed("STAKE", bob, 2, "bob", pool_id=1, amount=10))
    assert r2["ok"] is True
    assert ex.read_state()["nonces"][bob] == 2


def test_rejected_signed_call_cannot_run_later(signed_executor: StakingExecutor) -> None:
    ex = signed_executor
    alice = pubkey_for("alice")
    ex.submit_tx(
        _signed("CREATE_POOL", "admin", 1, "admin", name="Main", reward_rate_bps=500, schedule_type=0, min_stake=0, cooldown_period=3600)
    )
    assert ex.submit_tx(_signed("STAKE", alice, 1, "alice", pool_id=1, amount=1800))["ok"] is True
    assert ex.submit_tx(_signed("UNSTAKE", alice, 2, "alice", pool_id=1, amount=900))["ok"] is True

    env = _signed("UNSTAKE", alice, 3, "alice", pool_id=1, amount=900)
    first = ex.submit_tx(env)
    assert first["code"] == "cooldown_active"

    # Once the cooldown is over the captured envelope would be valid again.
    ex.clock.advance(3600)
    replay = ex.submit_tx(dict(env))
    assert replay["ok"] is False
    assert replay["code"] == "bad_nonce"
    assert ex.get_stake(1, alice).amount == 900


def test_spent_nonce_survives_restart(tmp_path) -> None:
    db_path = str(tmp_path / "signed.db")
    cfg = EngineConfig(
        chain_id="yieldsched-test",
        mode="testnet",
        admin="admin",
        db_path=db_path,
        time_unit_seconds=86_400,
        require_signatures=True,
        principal_keys={"admin": pubkey_for("admin")},
    )
    bob = pubkey_for("bob")
    ex = StakingExecutor(config=cfg, clock=ManualClock(start=T0))
    env = _signed("CLAIM_REWARDS", bob, 1, "bob", pool_id=7)
    assert ex.submit_tx(env)["code"] == "pool_not_found"

    items = ex.recent_receipts(limit=5)
    assert [(i["tx_type"], i["ok"], i["height"]) for i in items] == [("CLAIM_REWARDS", False, 0)]

    reopened = StakingExecutor(config=cfg, clock=ManualClock(start=T0))
    assert reopened.height == 0
    assert reopened.read_state()["nonces"] == {bob: 1}
    assert reopened.submit_tx(dict(env))["code"] == "bad_nonce"


def test_named_admin_must_sign_with_mapped_key(signed_executor: StakingExecutor) -> None:
    ex = signed_executor
    forged = _signed("CREATE_POOL", "admin", 1, "mallory", name="Evil", reward_rate_bps=1, schedule_type=0)
    r = ex.submit_tx(forged)
    assert r["code"] == "invalid_signature"
    assert ex.get_pool(1) is None
    # Admission rejections are not logged as receipts.
    assert ex.recent_receipts(limit=10) == []


def test_unsigned_dev_mode_ignores_nonces(executor, call, make_pool) -> None:
    make_pool()
    assert executor.read_state()["nonces"] == {}
    call("CLAIM_REWARDS", "alice", pool_id=99)
    assert executor.read_state()["nonces"] == {}
