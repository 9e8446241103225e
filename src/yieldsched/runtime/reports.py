# src/yieldsched/runtime/reports.py
"""Read-only computations over a LedgerView.

Nothing here mutates state; the executor calls these with a snapshot of the
last committed ledger and its current logical time.
"""

from __future__ import annotations

from typing import Optional, Tuple

from yieldsched.ledger.constants import BASE_MULTIPLIER_BPS, BPS_DENOMINATOR
from yieldsched.ledger.state import LedgerView
from yieldsched.runtime.apply.bonus import select_multiplier
from yieldsched.runtime.apply.staking import pending_rewards

POOL_NOT_FOUND_TEXT = "Pool not found"
NO_STAKE_TEXT = "No stake found"


def pending_for(view: LedgerView, pool_id: int, staker: str, *, now: int) -> int:
    # Unknown or inactive pools accrue nothing.
    pool = view.get_active_pool(pool_id)
    if pool is None:
        return 0
    return pending_rewards(
        pool,
        view.get_stake(pool_id, staker),
        view.get_schedules(pool_id),
        now=now,
        time_unit_seconds=view.time_unit_seconds,
    )


def multiplier_source_for(
    view: LedgerView, pool_id: int, *, now: int, staker: Optional[str] = None
) -> Tuple[int, Optional[int]]:
    """Current multiplier and the index of the bonus schedule that set it."""
    pool = view.get_pool(pool_id)
    if pool is None:
        return BASE_MULTIPLIER_BPS, None
    if staker:
        stake = view.get_stake(pool_id, staker)
        amount = stake.amount if stake is not None else 0
    else:
        amount = pool.total_staked
    return select_multiplier(pool, view.get_schedules(pool_id), now=now, staked_amount=amount)


def multiplier_for(view: LedgerView, pool_id: int, *, now: int, staker: Optional[str] = None) -> int:
    return multiplier_source_for(view, pool_id, now=now, staker=staker)[0]


def _fmt_multiplier(bps: int) -> str:
    return f"{bps / BPS_DENOMINATOR:.2f}x"


def generate_pool_status(view: LedgerView, pool_id: int, *, now: int) -> str:
    pool = view.get_pool(pool_id)
    if pool is None:
        return POOL_NOT_FOUND_TEXT
    return (
        f"Pool #{pool.id} '{pool.name}': rate {pool.reward_rate_bps} bps, "
        f"schedule {pool.schedule_label}, total staked {pool.total_staked}, "
        f"rewards balance {pool.rewards_balance}, {'active' if pool.active else 'inactive'}, "
        f"multiplier {_fmt_multiplier(multiplier_for(view, pool_id, now=now))}"
    )


def generate_stake_info(view: LedgerView, pool_id: int, staker: str, *, now: int) -> str:
    stake = view.get_stake(pool_id, staker)
    if stake is None:
        return NO_STAKE_TEXT
    pending = pending_for(view, pool_id, staker, now=now)
    return (
        f"Stake of {stake.staker} in pool #{stake.pool_id}: amount {stake.amount}, "
        f"pending rewards {pending}, total earned {stake.total_earned}"
    )


__all__ = [
    "NO_STAKE_TEXT",
    "POOL_NOT_FOUND_TEXT",
    "generate_pool_status",
    "generate_stake_info",
    "multiplier_for",
    "multiplier_source_for",
    "pending_for",
]
