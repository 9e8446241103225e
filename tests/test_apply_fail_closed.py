# tests/test_apply_fail_closed.py
from __future__ import annotations

import pytest

from yieldsched.runtime.domain_dispatch import apply_tx
from yieldsched.runtime.errors import ApplyError
from yieldsched.runtime.supported_txs import SUPPORTED_TX_TYPES
from yieldsched.runtime.tx_admission_types import TxEnvelope


def _state() -> dict:
    return {"params": {"admin": "admin"}, "last_ts": 1000}


def test_apply_fails_closed_for_unimplemented_tx_types() -> None:
    env = TxEnvelope(tx_type="WITHDRAW_ALL", signer="alice", payload={})
    assert env.tx_type not in SUPPORTED_TX_TYPES

    with pytest.raises(ApplyError) as e:
        apply_tx(_state(), env)

    assert e.value.code == "tx_unimplemented"
    assert e.value.reason == "tx_type_not_implemented"


def test_apply_requires_signer_and_tx_type() -> None:
    with pytest.raises(ApplyError) as e:
        apply_tx(_state(), {"tx_type": "STAKE", "signer": "", "payload": {"pool_id": 1, "amount": 1}})
    assert e.value.code == "invalid_payload"

    with pytest.raises(ApplyError) as e2:
        apply_tx(_state(), {"tx_type": "", "signer": "alice", "payload": {}})
    assert e2.value.code == "invalid_payload"


def test_apply_rejects_payload_schema_mismatch() -> None:
    # amounts are strict ints; a numeric string is not accepted
    with pytest.raises(ApplyError) as e:
        apply_tx(_state(), {"tx_type": "FUND_REWARDS_POOL", "signer": "a", "payload": {"pool_id": 1, "amount": "5"}})
    assert e.value.code == "invalid_payload"

    with pytest.raises(ApplyError) as e2:
        apply_tx(_state(), {"tx_type": "CLAIM_REWARDS", "signer": "a", "payload": {"pool_id": 1, "extra": True}})
    assert e2.value.code == "invalid_payload"


def test_admin_gate_runs_before_payload_checks() -> None:
    for t in ("ADD_BONUS_SCHEDULE", "CREATE_POOL", "SET_POOL_ACTIVE"):
        with pytest.raises(ApplyError) as e:
            apply_tx(_state(), {"tx_type": t, "signer": "mallory", "payload": {}})
        assert e.value.code == "not_authorized", t
        assert e.value.legacy_code == 8001


def test_unset_admin_fails_closed() -> None:
    st = {"params": {}, "last_ts": 0}
    with pytest.raises(ApplyError) as e:
        apply_tx(st, {"tx_type": "CREATE_POOL", "signer": "", "payload": {}})
    # missing signer is caught first
    assert e.value.code == "invalid_payload"

    with pytest.raises(ApplyError) as e2:
        apply_tx(st, {"tx_type": "CREATE_POOL", "signer": "anyone", "payload": {"name": "x", "reward_rate_bps": 1, "schedule_type": 0}})
    assert e2.value.code == "not_authorized"


def test_apply_mutates_state_in_place_and_returns_meta() -> None:
    st = _state()
    meta = apply_tx(
        st,
        TxEnvelope(tx_type="CREATE_POOL", signer="admin", payload={"name": "Main", "reward_rate_bps": 100, "schedule_type": 0}),
    )
    assert meta["applied"] == "CREATE_POOL"
    assert meta["result"] == 1
    assert st["pools"]["1"]["created_at"] == 1000
    assert st["next_pool_id"] == 2
