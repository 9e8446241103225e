# src/yieldsched/runtime/apply/pools.py
from __future__ import annotations

"""
Pool registry apply semantics.

Deterministic state transitions for:
- pool creation (admin)
- rewards funding (any caller)
- activation toggles (admin)

Pool ids are allocated sequentially from state["next_pool_id"]; a rejected
create never consumes an id.
"""

from typing import Any, Dict, Optional

from yieldsched.ledger.constants import MAX_NAME_LEN, ScheduleType
from yieldsched.runtime.apply.common import as_int, ensure_root_dict, logical_now, pool_record
from yieldsched.runtime.errors import INVALID_AMOUNT, ApplyError
from yieldsched.runtime.events import POOL_ACTIVE_SET, POOL_CREATED, POOL_FUNDED, make_event
from yieldsched.runtime.gates import require_admin
from yieldsched.runtime.tx_admission_types import TxEnvelope
from yieldsched.runtime.tx_schema import (
    CreatePoolPayload,
    FundRewardsPoolPayload,
    SetPoolActivePayload,
    parse_payload,
)

Json = Dict[str, Any]


def validate_name(name: str, *, field: str) -> str:
    s = str(name or "").strip()
    if not s or len(s) > MAX_NAME_LEN:
        raise ApplyError(INVALID_AMOUNT, f"bad_{field}", {"len": len(s), "max": MAX_NAME_LEN})
    return s


def _apply_create_pool(state: Json, env: TxEnvelope) -> Json:
    require_admin(state, env.signer, tx_type=env.tx_type)
    p = parse_payload(CreatePoolPayload, env.payload)

    if p.reward_rate_bps <= 0:
        raise ApplyError(INVALID_AMOUNT, "reward_rate_must_be_positive", {"reward_rate_bps": p.reward_rate_bps})
    try:
        schedule_type = ScheduleType(p.schedule_type)
    except ValueError:
        raise ApplyError(INVALID_AMOUNT, "unknown_schedule_type", {"schedule_type": p.schedule_type})
    name = validate_name(p.name, field="name")

    now = logical_now(state)
    pools = ensure_root_dict(state, "pools")
    pool_id = max(1, as_int(state.get("next_pool_id"), 1))
    while str(pool_id) in pools:
        pool_id += 1

    pools[str(pool_id)] = {
        "id": pool_id,
        "name": name,
        "reward_rate_bps": int(p.reward_rate_bps),
        "schedule_type": int(schedule_type),
        "min_stake": int(p.min_stake),
        "cooldown_period": int(p.cooldown_period),
        "rewards_balance": int(p.initial_rewards),
        "total_staked": 0,
        "active": True,
        "created_at": now,
        "creator": env.signer,
    }
    state["next_pool_id"] = pool_id + 1

    event = make_event(
        POOL_CREATED,
        pool_id=pool_id,
        actor=env.signer,
        at=now,
        name=name,
        reward_rate_bps=int(p.reward_rate_bps),
        schedule_type=int(schedule_type),
        min_stake=int(p.min_stake),
        cooldown_period=int(p.cooldown_period),
        initial_rewards=int(p.initial_rewards),
    )
    return {"applied": "CREATE_POOL", "result": pool_id, "events": [event]}


def _apply_fund_rewards_pool(state: Json, env: TxEnvelope) -> Json:
    p = parse_payload(FundRewardsPoolPayload, env.payload)
    pool = pool_record(state, p.pool_id, require_active=False)
    if p.amount <= 0:
        raise ApplyError(INVALID_AMOUNT, "amount_must_be_positive", {"amount": p.amount})

    now = logical_now(state)
    pool["rewards_balance"] = as_int(pool.get("rewards_balance"), 0) + int(p.amount)

    event = make_event(
        POOL_FUNDED,
        pool_id=p.pool_id,
        actor=env.signer,
        at=now,
        amount=int(p.amount),
        rewards_balance=int(pool["rewards_balance"]),
    )
    return {"applied": "FUND_REWARDS_POOL", "result": True, "events": [event]}


def _apply_set_pool_active(state: Json, env: TxEnvelope) -> Json:
    require_admin(state, env.signer, tx_type=env.tx_type)
    p = parse_payload(SetPoolActivePayload, env.payload)
    pool = pool_record(state, p.pool_id, require_active=False)

    now = logical_now(state)
    pool["active"] = bool(p.active)

    event = make_event(POOL_ACTIVE_SET, pool_id=p.pool_id, actor=env.signer, at=now, active=bool(p.active))
    return {"applied": "SET_POOL_ACTIVE", "result": True, "events": [event]}


POOLS_TX_TYPES = ("CREATE_POOL", "FUND_REWARDS_POOL", "SET_POOL_ACTIVE")


def apply_pools(state: Json, env: TxEnvelope) -> Optional[Json]:
    t = env.tx_type
    if t == "CREATE_POOL":
        return _apply_create_pool(state, env)
    if t == "FUND_REWARDS_POOL":
        return _apply_fund_rewards_pool(state, env)
    if t == "SET_POOL_ACTIVE":
        return _apply_set_pool_active(state, env)
    return None


__all__ = ["POOLS_TX_TYPES", "apply_pools", "validate_name"]
