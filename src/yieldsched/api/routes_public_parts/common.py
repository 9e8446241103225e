from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from yieldsched.api.errors import ApiError

Json = Dict[str, Any]


def _executor(request: Request):
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


def _require_pool(request: Request, pool_id: int):
    pool = _executor(request).get_pool(pool_id)
    if pool is None:
        raise ApiError.not_found("pool_not_found", "Pool not found", {"pool_id": int(pool_id)})
    return pool
