from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Query, Request

from yieldsched.api.routes_public_parts.common import _executor

router = APIRouter()


@router.get("/clock")
def clock(request: Request, ts: Optional[int] = Query(default=None, ge=0)) -> Dict[str, Any]:
    """Logical time and its day classification (or that of `ts`)."""
    ex = _executor(request)
    now = ex.get_current_time()
    at = now if ts is None else int(ts)
    return {
        "ok": True,
        "now": now,
        "ts": at,
        "day_of_week": ex.get_day_of_week(at),
        "is_weekend": ex.is_weekend(at),
    }
