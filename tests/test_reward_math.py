from __future__ import annotations

from yieldsched.ledger.constants import UINT128_MAX, ScheduleType
from yieldsched.ledger.types import Pool, Stake
from yieldsched.runtime.apply.staking import pending_rewards, saturating_mul

DAY = 86_400


def _pool(rate: int = 500, schedule_type: ScheduleType = ScheduleType.LINEAR) -> Pool:
    return Pool(
        id=1,
        name="p",
        reward_rate_bps=rate,
        schedule_type=schedule_type,
        min_stake=0,
        cooldown_period=0,
        rewards_balance=0,
        total_staked=0,
        active=True,
        created_at=0,
    )


def _stake(amount: int, last: int = 0) -> Stake:
    return Stake(pool_id=1, staker="a", amount=amount, stake_time=None, last_accrual_time=last, total_earned=0)


def test_linear_per_day_rate() -> None:
    assert pending_rewards(_pool(), _stake(1000), [], now=DAY, time_unit_seconds=DAY) == 50
    assert pending_rewards(_pool(), _stake(1000), [], now=10 * DAY, time_unit_seconds=DAY) == 500


def test_sub_unit_results_floor_to_zero() -> None:
    assert pending_rewards(_pool(rate=1), _stake(1), [], now=DAY, time_unit_seconds=DAY) == 0


def test_no_elapsed_time_or_empty_stake_is_zero() -> None:
    assert pending_rewards(_pool(), _stake(1000, last=50), [], now=50, time_unit_seconds=DAY) == 0
    assert pending_rewards(_pool(), _stake(1000, last=50), [], now=10, time_unit_seconds=DAY) == 0
    assert pending_rewards(_pool(), _stake(0), [], now=DAY, time_unit_seconds=DAY) == 0
    assert pending_rewards(_pool(), None, [], now=DAY, time_unit_seconds=DAY) == 0


def test_products_saturate_at_uint128() -> None:
    assert saturating_mul(2**64, 2**64) == UINT128_MAX
    assert saturating_mul(2**63, 2) == 2**64

    huge = pending_rewards(_pool(rate=10**6), _stake(2**120), [], now=10**9, time_unit_seconds=1)
    assert huge == UINT128_MAX // (10_000 * 10_000)


def test_zero_time_unit_falls_back_to_a_day() -> None:
    assert pending_rewards(_pool(), _stake(1000), [], now=DAY, time_unit_seconds=0) == 50
