from __future__ import annotations

from conftest import ADMIN


def test_first_pool_gets_id_one(call) -> None:
    r = call(
        "CREATE_POOL",
        ADMIN,
        name="Main",
        reward_rate_bps=500,
        schedule_type=0,
        min_stake=100,
        cooldown_period=0,
        initial_rewards=1000,
    )
    assert r["ok"] is True
    assert r["result"] == 1
    assert [e["event"] for e in r["events"]] == ["pool-created"]


def test_non_admin_create_changes_nothing_then_admin_gets_id_one(executor, call) -> None:
    before = executor.read_state()

    r = call("CREATE_POOL", "mallory", name="Evil", reward_rate_bps=500, schedule_type=0)
    assert r["ok"] is False
    assert r["code"] == "not_authorized"
    assert r["legacy_code"] == 8001
    assert executor.read_state() == before

    r2 = call("CREATE_POOL", ADMIN, name="Main", reward_rate_bps=500, schedule_type=0)
    assert r2["ok"] is True
    assert r2["result"] == 1


def test_zero_rate_is_invalid_amount_and_consumes_no_id(call) -> None:
    r = call("CREATE_POOL", ADMIN, name="Zero", reward_rate_bps=0, schedule_type=0)
    assert r["ok"] is False
    assert r["code"] == "invalid_amount"

    r2 = call("CREATE_POOL", ADMIN, name="Main", reward_rate_bps=1, schedule_type=0)
    assert r2["result"] == 1


def test_unknown_schedule_type_and_bad_names_are_invalid_amount(call) -> None:
    assert call("CREATE_POOL", ADMIN, name="x", reward_rate_bps=1, schedule_type=4)["code"] == "invalid_amount"
    assert call("CREATE_POOL", ADMIN, name="", reward_rate_bps=1, schedule_type=0)["code"] == "invalid_amount"
    assert call("CREATE_POOL", ADMIN, name="n" * 65, reward_rate_bps=1, schedule_type=0)["code"] == "invalid_amount"
    assert call("CREATE_POOL", ADMIN, name="n" * 64, reward_rate_bps=1, schedule_type=0)["ok"] is True


def test_pool_ids_are_sequential(make_pool) -> None:
    assert [make_pool(name=f"p{i}") for i in range(3)] == [1, 2, 3]


def test_fund_rewards_pool_any_caller(executor, call, make_pool) -> None:
    pid = make_pool(initial_rewards=10)

    r = call("FUND_REWARDS_POOL", "bob", pool_id=pid, amount=90)
    assert r["ok"] is True
    assert r["result"] is True
    ev = r["events"][0]
    assert ev["event"] == "pool-funded"
    assert ev["rewards_balance"] == 100
    assert executor.get_pool(pid).rewards_balance == 100


def test_fund_rejects_zero_and_unknown_pool(call, make_pool) -> None:
    pid = make_pool()
    assert call("FUND_REWARDS_POOL", "bob", pool_id=pid, amount=0)["code"] == "invalid_amount"
    assert call("FUND_REWARDS_POOL", "bob", pool_id=99, amount=5)["code"] == "pool_not_found"


def test_set_pool_active_is_admin_only(executor, call, make_pool) -> None:
    pid = make_pool()

    assert call("SET_POOL_ACTIVE", "bob", pool_id=pid, active=False)["code"] == "not_authorized"
    assert executor.get_pool(pid).active is True

    r = call("SET_POOL_ACTIVE", ADMIN, pool_id=pid, active=False)
    assert r["ok"] is True
    assert r["events"][0]["event"] == "pool-active-set"
    assert executor.get_pool(pid).active is False

    assert call("SET_POOL_ACTIVE", ADMIN, pool_id=42, active=True)["code"] == "pool_not_found"


def test_inactive_pool_can_still_be_funded(executor, call, make_pool) -> None:
    pid = make_pool(initial_rewards=0)
    call("SET_POOL_ACTIVE", ADMIN, pool_id=pid, active=False)

    assert call("FUND_REWARDS_POOL", "bob", pool_id=pid, amount=7)["ok"] is True
    assert executor.get_pool(pid).rewards_balance == 7


def test_protocol_stats(executor, call, make_pool) -> None:
    assert executor.get_protocol_stats() == {
        "total_pools": 0,
        "total_staked": 0,
        "active_pools": 0,
        "total_rewards_balance": 0,
    }

    p1 = make_pool(initial_rewards=100)
    p2 = make_pool(name="Second", initial_rewards=50)
    call("STAKE", "alice", pool_id=p1, amount=1000)
    call("STAKE", "bob", pool_id=p2, amount=300)
    call("SET_POOL_ACTIVE", ADMIN, pool_id=p2, active=False)

    assert executor.get_protocol_stats() == {
        "total_pools": 2,
        "total_staked": 1300,
        "active_pools": 1,
        "total_rewards_balance": 150,
    }


def test_created_pool_record(executor, clock, make_pool) -> None:
    pid = make_pool(cooldown_period=3600)
    pool = executor.get_pool(pid)
    assert pool.name == "Main"
    assert pool.reward_rate_bps == 500
    assert pool.min_stake == 100
    assert pool.cooldown_period == 3600
    assert pool.rewards_balance == 1_000_000
    assert pool.total_staked == 0
    assert pool.active is True
    assert pool.created_at == clock.now()
    assert pool.creator == ADMIN
    assert executor.get_pool(pid + 1) is None
