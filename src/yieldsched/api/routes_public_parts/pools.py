from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Query, Request

from yieldsched.api.routes_public_parts.common import _executor, _require_pool

router = APIRouter()

Json = Dict[str, Any]


@router.get("/pools/{pool_id}")
def get_pool(request: Request, pool_id: int) -> Json:
    return {"ok": True, "pool": _require_pool(request, pool_id).to_json()}


@router.get("/pools/{pool_id}/status")
def pool_status(request: Request, pool_id: int) -> Json:
    # Unknown pools still answer 200; the summary says so.
    return {"ok": True, "pool_id": int(pool_id), "status": _executor(request).generate_pool_status(pool_id)}


@router.get("/pools/{pool_id}/multiplier")
def pool_multiplier(request: Request, pool_id: int, staker: Optional[str] = Query(default=None)) -> Json:
    _require_pool(request, pool_id)
    ex = _executor(request)
    return {
        "ok": True,
        "pool_id": int(pool_id),
        "staker": staker,
        "at": ex.get_current_time(),
        "multiplier_bps": ex.get_current_multiplier(pool_id, staker),
        "schedule_index": ex.get_multiplier_source(pool_id, staker),
    }


@router.get("/pools/{pool_id}/schedules")
def pool_schedules(request: Request, pool_id: int) -> Json:
    _require_pool(request, pool_id)
    items = [s.to_json() for s in _executor(request).list_bonus_schedules(pool_id)]
    return {"ok": True, "pool_id": int(pool_id), "items": items}
