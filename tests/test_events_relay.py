from __future__ import annotations

import pytest
from conftest import ADMIN

from yieldsched.runtime.events import make_event, relay_payload


def test_pool_created_carries_relay_keys(executor, make_pool) -> None:
    seen = []
    executor.add_observer(lambda ev: seen.append(relay_payload(ev)))
    make_pool(schedule_type=1, reward_rate_bps=750)

    ev = seen[0]
    assert ev["event"] == "pool-created"
    assert ev["pool-id"] == 1
    assert ev["schedule-type"] == 1
    assert ev["reward-rate"] == 750
    assert "reward_rate_bps" not in ev


def test_bonus_and_stake_events_relay_keys(executor, call, make_pool, clock) -> None:
    pid = make_pool(schedule_type=2)
    seen = []
    executor.add_observer(lambda ev: seen.append(relay_payload(ev)))

    call("ADD_BONUS_SCHEDULE", ADMIN, pool_id=pid, name="x", multiplier_bps=15000, start_time=0, duration=10**10)
    call("STAKE", "alice", pool_id=pid, amount=1000)
    clock.advance(86_400)
    call("COMPOUND", "alice", pool_id=pid)

    bonus, staked, compounded = seen
    assert bonus["multiplier"] == 15000
    assert staked["total-amount"] == 1000
    assert compounded["new-total"] == 1000 + compounded["amount"]
    assert "total-amount" not in compounded


def test_relay_payload_leaves_values_alone() -> None:
    ev = make_event("rewards-claimed", pool_id=3, actor="bob", at=5, staker="bob", amount=7, total_earned=9)
    assert relay_payload(ev) == {
        "event": "rewards-claimed",
        "pool-id": 3,
        "actor": "bob",
        "at": 5,
        "staker": "bob",
        "amount": 7,
        "total-earned": 9,
    }


def test_unknown_event_name_is_refused() -> None:
    with pytest.raises(ValueError):
        make_event("pool-drained", pool_id=1, actor="a", at=0)
