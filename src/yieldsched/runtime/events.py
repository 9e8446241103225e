# src/yieldsched/runtime/events.py
from __future__ import annotations

"""Structured events emitted by state-changing calls.

Appliers return events inside their result; they never deliver them. The
executor hands committed events to whatever observers the runtime registered.
"""

from typing import Any, Dict

Json = Dict[str, Any]

POOL_CREATED = "pool-created"
POOL_FUNDED = "pool-funded"
POOL_ACTIVE_SET = "pool-active-set"
BONUS_SCHEDULE_ADDED = "bonus-schedule-added"
STAKED = "staked"
UNSTAKED = "unstaked"
REWARDS_CLAIMED = "rewards-claimed"
COMPOUNDED = "compounded"

EVENT_NAMES = frozenset(
    {
        POOL_CREATED,
        POOL_FUNDED,
        POOL_ACTIVE_SET,
        BONUS_SCHEDULE_ADDED,
        STAKED,
        UNSTAKED,
        REWARDS_CLAIMED,
        COMPOUNDED,
    }
)


def make_event(event: str, *, pool_id: int, actor: str, at: int, **fields: Any) -> Json:
    if event not in EVENT_NAMES:
        raise ValueError(f"unknown event: {event!r}")
    out: Json = {"event": event, "pool_id": int(pool_id), "actor": str(actor), "at": int(at)}
    out.update(fields)
    return out


# Analytics relays keyed on the deployed contract's print events use
# hyphenated names, and a few fields are named differently there.
_RELAY_KEYS = {
    "reward_rate_bps": "reward-rate",
    "multiplier_bps": "multiplier",
}
_RELAY_KEYS_BY_EVENT = {
    COMPOUNDED: {"total_amount": "new-total"},
}


def relay_payload(event: Json) -> Json:
    """Rename an event's fields to the keys a contract-event relay reads.

    `pool_id` becomes `pool-id`, `reward_rate_bps` becomes `reward-rate`,
    `multiplier_bps` becomes `multiplier`, and a compound's `total_amount`
    becomes `new-total`. Every other underscore is turned into a hyphen.
    Values are unchanged.
    """
    overrides = _RELAY_KEYS_BY_EVENT.get(str(event.get("event")), {})
    out: Json = {}
    for k, v in event.items():
        key = overrides.get(k) or _RELAY_KEYS.get(k) or k.replace("_", "-")
        out[key] = v
    return out
