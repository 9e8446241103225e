# src/yieldsched/runtime/apply/common.py
from __future__ import annotations

from typing import Any, Dict, List

from yieldsched.runtime.errors import POOL_NOT_FOUND, ApplyError

Json = Dict[str, Any]


def as_int(x: Any, default: int = 0) -> int:
    try:
        if isinstance(x, bool):
            return int(default)
        return int(x)
    except Exception:
        return int(default)


def ensure_root_dict(state: Json, key: str) -> Json:
    cur = state.get(key)
    if not isinstance(cur, dict):
        cur = {}
        state[key] = cur
    return cur


def logical_now(state: Json) -> int:
    """Time of the call being applied; the executor stamps it before dispatch."""
    return as_int(state.get("last_ts"), 0)


def pool_record(state: Json, pool_id: int, *, require_active: bool) -> Json:
    """Return the mutable pool record or raise PoolNotFound.

    With require_active, inactive pools are reported exactly like absent ones.
    """
    pools = ensure_root_dict(state, "pools")
    rec = pools.get(str(int(pool_id)))
    if not isinstance(rec, dict):
        raise ApplyError(POOL_NOT_FOUND, "pool_not_found", {"pool_id": int(pool_id)})
    if require_active and not bool(rec.get("active", False)):
        raise ApplyError(POOL_NOT_FOUND, "pool_not_found", {"pool_id": int(pool_id)})
    return rec


def stakes_for_pool(state: Json, pool_id: int) -> Json:
    stakes = ensure_root_dict(state, "stakes")
    return ensure_root_dict(stakes, str(int(pool_id)))


def schedules_for_pool(state: Json, pool_id: int) -> List[Json]:
    scheds = ensure_root_dict(state, "schedules")
    cur = scheds.get(str(int(pool_id)))
    if not isinstance(cur, list):
        cur = []
        scheds[str(int(pool_id))] = cur
    return cur
