# src/yieldsched/runtime/apply/bonus.py
from __future__ import annotations

"""
Bonus schedule engine.

Schedules are append-only per pool. How they affect rewards depends on the
pool's schedule type:

  LINEAR         always 1x; schedules are recorded but never consulted
  BONUS_WEEKEND  2x on Saturday/Sunday (UTC day boundaries), else 1x
  TIERED         a schedule is a tier: active window + min_amount threshold
  DECAY          a schedule starts at multiplier_bps and decays linearly to 1x
                 over its duration

When several schedules match, the highest effective multiplier wins and equal
multipliers resolve to the most recently added schedule.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from yieldsched.ledger.constants import BASE_MULTIPLIER_BPS, WEEKEND_MULTIPLIER_BPS, ScheduleType
from yieldsched.ledger.types import BonusSchedule, Pool
from yieldsched.runtime.apply.common import logical_now, pool_record, schedules_for_pool
from yieldsched.runtime.apply.pools import validate_name
from yieldsched.runtime.clock import is_weekend
from yieldsched.runtime.errors import INVALID_AMOUNT, ApplyError
from yieldsched.runtime.events import BONUS_SCHEDULE_ADDED, make_event
from yieldsched.runtime.gates import require_admin
from yieldsched.runtime.tx_admission_types import TxEnvelope
from yieldsched.runtime.tx_schema import AddBonusSchedulePayload, parse_payload

Json = Dict[str, Any]


def decayed_multiplier(schedule: BonusSchedule, now: int) -> int:
    """Linear decay from multiplier_bps at start_time to 1x at end_time."""
    if not schedule.is_active_at(now) or schedule.duration <= 0:
        return BASE_MULTIPLIER_BPS
    remaining = schedule.end_time - int(now)
    bonus = schedule.multiplier_bps - BASE_MULTIPLIER_BPS
    value = BASE_MULTIPLIER_BPS + (bonus * remaining) // schedule.duration
    return max(BASE_MULTIPLIER_BPS, value)


def _pick(candidates: Iterable[Tuple[int, int]]) -> Tuple[int, Optional[int]]:
    # (multiplier, index): max() prefers the larger multiplier, then the later index.
    best: Optional[Tuple[int, int]] = None
    for c in candidates:
        if best is None or c > best:
            best = c
    if best is None:
        return BASE_MULTIPLIER_BPS, None
    return best[0], best[1]


def select_multiplier(
    pool: Pool,
    schedules: Iterable[BonusSchedule],
    *,
    now: int,
    staked_amount: int,
) -> Tuple[int, Optional[int]]:
    """Return (multiplier_bps, schedule index).

    The index is None when no recorded schedule produced the multiplier
    (LINEAR and BONUS_WEEKEND pools, or nothing matched).
    """
    st = pool.schedule_type

    if st == ScheduleType.BONUS_WEEKEND:
        return (WEEKEND_MULTIPLIER_BPS if is_weekend(now) else BASE_MULTIPLIER_BPS), None

    if st == ScheduleType.TIERED:
        return _pick(
            (s.multiplier_bps, s.index)
            for s in schedules
            if s.is_active_at(now) and int(staked_amount) >= s.min_amount
        )

    if st == ScheduleType.DECAY:
        return _pick((decayed_multiplier(s, now), s.index) for s in schedules if s.is_active_at(now))

    return BASE_MULTIPLIER_BPS, None


def effective_multiplier(
    pool: Pool,
    schedules: Iterable[BonusSchedule],
    *,
    now: int,
    staked_amount: int,
) -> int:
    return select_multiplier(pool, schedules, now=now, staked_amount=staked_amount)[0]


def pool_schedules(state: Json, pool_id: int) -> List[BonusSchedule]:
    scheds = state.get("schedules")
    raw = scheds.get(str(int(pool_id))) if isinstance(scheds, dict) else None
    if not isinstance(raw, list):
        return []
    return [BonusSchedule.from_json(i, rec) for i, rec in enumerate(raw) if isinstance(rec, dict)]


def _apply_add_bonus_schedule(state: Json, env: TxEnvelope) -> Json:
    require_admin(state, env.signer, tx_type=env.tx_type)
    p = parse_payload(AddBonusSchedulePayload, env.payload)
    pool_record(state, p.pool_id, require_active=False)

    name = validate_name(p.name, field="schedule_name")
    if p.multiplier_bps <= 0:
        raise ApplyError(INVALID_AMOUNT, "multiplier_must_be_positive", {"multiplier_bps": p.multiplier_bps})
    if p.duration <= 0:
        raise ApplyError(INVALID_AMOUNT, "duration_must_be_positive", {"duration": p.duration})

    now = logical_now(state)
    scheds = schedules_for_pool(state, p.pool_id)
    index = len(scheds)
    scheds.append(
        {
            "name": name,
            "multiplier_bps": int(p.multiplier_bps),
            "start_time": int(p.start_time),
            "duration": int(p.duration),
            "min_amount": int(p.min_amount),
        }
    )

    event = make_event(
        BONUS_SCHEDULE_ADDED,
        pool_id=p.pool_id,
        actor=env.signer,
        at=now,
        index=index,
        name=name,
        multiplier_bps=int(p.multiplier_bps),
        start_time=int(p.start_time),
        duration=int(p.duration),
        min_amount=int(p.min_amount),
    )
    return {"applied": "ADD_BONUS_SCHEDULE", "result": index, "events": [event]}


BONUS_TX_TYPES = ("ADD_BONUS_SCHEDULE",)


def apply_bonus(state: Json, env: TxEnvelope) -> Optional[Json]:
    if env.tx_type == "ADD_BONUS_SCHEDULE":
        return _apply_add_bonus_schedule(state, env)
    return None


__all__ = [
    "BONUS_TX_TYPES",
    "apply_bonus",
    "decayed_multiplier",
    "effective_multiplier",
    "pool_schedules",
    "select_multiplier",
]
