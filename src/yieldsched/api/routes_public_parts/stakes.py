from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from yieldsched.api.routes_public_parts.common import _executor

router = APIRouter()

Json = Dict[str, Any]


@router.get("/pools/{pool_id}/stakes/{staker}")
def get_stake(request: Request, pool_id: int, staker: str) -> Json:
    stake = _executor(request).get_stake(pool_id, staker)
    return {"ok": True, "stake": stake.to_json() if stake is not None else None}


@router.get("/pools/{pool_id}/stakes/{staker}/pending")
def pending(request: Request, pool_id: int, staker: str) -> Json:
    ex = _executor(request)
    return {
        "ok": True,
        "pool_id": int(pool_id),
        "staker": staker,
        "at": ex.get_current_time(),
        "pending": ex.calculate_pending_rewards(pool_id, staker),
    }


@router.get("/pools/{pool_id}/stakes/{staker}/info")
def stake_info(request: Request, pool_id: int, staker: str) -> Json:
    return {"ok": True, "info": _executor(request).generate_stake_info(pool_id, staker)}
