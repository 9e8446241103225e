# src/yieldsched/runtime/apply/staking.py
from __future__ import annotations

"""
Stake ledger & reward accrual apply semantics.

Per (pool, staker) record:
    amount             principal
    stake_time         time of the most recent unstake (cooldown anchor), None before the first
    last_accrual_time  rewards accrue from here
    total_earned       cumulative rewards credited (claimed or compounded)

Accrual:
    amount * reward_rate_bps * elapsed * multiplier // (10000 * 10000 * time_unit)

Every intermediate product saturates at UINT128_MAX. Payouts never exceed the
pool's rewards_balance: a claim or compound pays min(pending, rewards_balance)
and the remainder of that accrual period is not carried forward.
"""

from typing import Any, Dict, Iterable, Optional, Tuple

from yieldsched.ledger.constants import BPS_DENOMINATOR, DEFAULT_TIME_UNIT_SECONDS, UINT128_MAX
from yieldsched.ledger.types import BonusSchedule, Pool, Stake
from yieldsched.runtime.apply.bonus import effective_multiplier, pool_schedules
from yieldsched.runtime.apply.common import as_int, logical_now, pool_record, stakes_for_pool
from yieldsched.runtime.errors import (
    COOLDOWN_ACTIVE,
    INSUFFICIENT_STAKE,
    INVALID_AMOUNT,
    NO_REWARDS,
    ApplyError,
)
from yieldsched.runtime.events import COMPOUNDED, REWARDS_CLAIMED, STAKED, UNSTAKED, make_event
from yieldsched.runtime.tx_admission_types import TxEnvelope
from yieldsched.runtime.tx_schema import (
    ClaimRewardsPayload,
    CompoundPayload,
    StakePayload,
    UnstakePayload,
    parse_payload,
)

Json = Dict[str, Any]


def saturating_mul(a: int, b: int) -> int:
    r = int(a) * int(b)
    return UINT128_MAX if r > UINT128_MAX else r


def pending_rewards(
    pool: Pool,
    stake: Optional[Stake],
    schedules: Iterable[BonusSchedule],
    *,
    now: int,
    time_unit_seconds: int,
) -> int:
    if stake is None or stake.amount <= 0:
        return 0
    elapsed = int(now) - int(stake.last_accrual_time)
    if elapsed <= 0:
        return 0

    multiplier = effective_multiplier(pool, schedules, now=now, staked_amount=stake.amount)
    num = saturating_mul(saturating_mul(saturating_mul(stake.amount, pool.reward_rate_bps), elapsed), multiplier)
    unit = int(time_unit_seconds) if int(time_unit_seconds) > 0 else DEFAULT_TIME_UNIT_SECONDS
    return num // (BPS_DENOMINATOR * BPS_DENOMINATOR * unit)


def _time_unit(state: Json) -> int:
    params = state.get("params")
    if not isinstance(params, dict):
        return DEFAULT_TIME_UNIT_SECONDS
    return as_int(params.get("time_unit_seconds"), DEFAULT_TIME_UNIT_SECONDS)


def _apply_stake(state: Json, env: TxEnvelope) -> Json:
    p = parse_payload(StakePayload, env.payload)
    pool = pool_record(state, p.pool_id, require_active=True)

    if p.amount <= 0:
        raise ApplyError(INVALID_AMOUNT, "amount_must_be_positive", {"amount": p.amount})
    min_stake = as_int(pool.get("min_stake"), 0)
    if p.amount < min_stake:
        raise ApplyError(INSUFFICIENT_STAKE, "below_min_stake", {"amount": p.amount, "min_stake": min_stake})

    now = logical_now(state)
    by_staker = stakes_for_pool(state, p.pool_id)
    rec = by_staker.get(env.signer)
    if not isinstance(rec, dict):
        rec = {"amount": 0, "stake_time": None, "last_accrual_time": now, "total_earned": 0, "created_at": now}
        by_staker[env.signer] = rec

    # Accrual restarts from the new baseline, including the added principal.
    rec["last_accrual_time"] = now
    rec["amount"] = as_int(rec.get("amount"), 0) + int(p.amount)
    pool["total_staked"] = as_int(pool.get("total_staked"), 0) + int(p.amount)

    event = make_event(
        STAKED,
        pool_id=p.pool_id,
        actor=env.signer,
        at=now,
        staker=env.signer,
        amount=int(p.amount),
        total_amount=int(rec["amount"]),
    )
    return {"applied": "STAKE", "result": True, "events": [event]}


def _apply_unstake(state: Json, env: TxEnvelope) -> Json:
    p = parse_payload(UnstakePayload, env.payload)
    pool = pool_record(state, p.pool_id, require_active=True)

    if p.amount <= 0:
        raise ApplyError(INVALID_AMOUNT, "amount_must_be_positive", {"amount": p.amount})

    by_staker = stakes_for_pool(state, p.pool_id)
    rec = by_staker.get(env.signer)
    current = as_int(rec.get("amount"), 0) if isinstance(rec, dict) else 0
    if not isinstance(rec, dict) or p.amount > current:
        raise ApplyError(INSUFFICIENT_STAKE, "unstake_exceeds_stake", {"amount": p.amount, "staked": current})

    now = logical_now(state)
    cooldown = as_int(pool.get("cooldown_period"), 0)
    last_unstake = rec.get("stake_time")
    if cooldown > 0 and last_unstake is not None and now - as_int(last_unstake, 0) < cooldown:
        raise ApplyError(
            COOLDOWN_ACTIVE,
            "cooldown_active",
            {"last_unstake": as_int(last_unstake, 0), "available_at": as_int(last_unstake, 0) + cooldown},
        )

    rec["amount"] = current - int(p.amount)
    rec["stake_time"] = now
    pool["total_staked"] = as_int(pool.get("total_staked"), 0) - int(p.amount)

    event = make_event(
        UNSTAKED,
        pool_id=p.pool_id,
        actor=env.signer,
        at=now,
        staker=env.signer,
        amount=int(p.amount),
        remaining=int(rec["amount"]),
    )
    return {"applied": "UNSTAKE", "result": True, "events": [event]}


def _settle(state: Json, env: TxEnvelope, pool_id: int) -> Tuple[Json, Json, int, int]:
    """Compute the payable accrual for the caller.

    Returns (pool_rec, stake_rec, payout, pending). Raises NoRewards when nothing can be paid.
    """
    pool = pool_record(state, pool_id, require_active=True)
    rec = stakes_for_pool(state, pool_id).get(env.signer)
    if not isinstance(rec, dict):
        raise ApplyError(NO_REWARDS, "no_stake", {"pool_id": int(pool_id)})

    now = logical_now(state)
    pending = pending_rewards(
        Pool.from_json(pool),
        Stake.from_json(pool_id, env.signer, rec),
        pool_schedules(state, pool_id),
        now=now,
        time_unit_seconds=_time_unit(state),
    )
    if pending <= 0:
        raise ApplyError(NO_REWARDS, "nothing_accrued", {"pool_id": int(pool_id)})

    balance = as_int(pool.get("rewards_balance"), 0)
    payout = min(pending, balance)
    if payout <= 0:
        raise ApplyError(NO_REWARDS, "rewards_pool_empty", {"pool_id": int(pool_id), "pending": pending})

    pool["rewards_balance"] = balance - payout
    rec["total_earned"] = as_int(rec.get("total_earned"), 0) + payout
    rec["last_accrual_time"] = now
    return pool, rec, payout, pending


def _apply_claim_rewards(state: Json, env: TxEnvelope) -> Json:
    p = parse_payload(ClaimRewardsPayload, env.payload)
    _pool, rec, payout, pending = _settle(state, env, p.pool_id)

    event = make_event(
        REWARDS_CLAIMED,
        pool_id=p.pool_id,
        actor=env.signer,
        at=logical_now(state),
        staker=env.signer,
        amount=int(payout),
        total_earned=int(rec["total_earned"]),
    )
    if payout < pending:
        event["pending"] = int(pending)
    return {"applied": "CLAIM_REWARDS", "result": payout, "events": [event]}


def _apply_compound(state: Json, env: TxEnvelope) -> Json:
    p = parse_payload(CompoundPayload, env.payload)
    pool, rec, payout, pending = _settle(state, env, p.pool_id)

    rec["amount"] = as_int(rec.get("amount"), 0) + payout
    pool["total_staked"] = as_int(pool.get("total_staked"), 0) + payout

    event = make_event(
        COMPOUNDED,
        pool_id=p.pool_id,
        actor=env.signer,
        at=logical_now(state),
        staker=env.signer,
        amount=int(payout),
        total_amount=int(rec["amount"]),
    )
    if payout < pending:
        event["pending"] = int(pending)
    return {"applied": "COMPOUND", "result": payout, "events": [event]}


STAKING_TX_TYPES = ("STAKE", "UNSTAKE", "CLAIM_REWARDS", "COMPOUND")


def apply_staking(state: Json, env: TxEnvelope) -> Optional[Json]:
    t = env.tx_type
    if t == "STAKE":
        return _apply_stake(state, env)
    if t == "UNSTAKE":
        return _apply_unstake(state, env)
    if t == "CLAIM_REWARDS":
        return _apply_claim_rewards(state, env)
    if t == "COMPOUND":
        return _apply_compound(state, env)
    return None


__all__ = ["STAKING_TX_TYPES", "apply_staking", "pending_rewards", "saturating_mul"]
