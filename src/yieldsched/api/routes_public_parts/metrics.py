from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from yieldsched.api.errors import ApiError
from yieldsched.runtime.metrics import metrics_enabled, snapshot

router = APIRouter()


@router.get("/metrics")
def metrics() -> Dict[str, Any]:
    """Counter/gauge snapshot.

    Disabled by default. Enable with:
      YIELDSCHED_METRICS_ENABLED=1
    """
    if not metrics_enabled():
        raise ApiError.not_found("not_found", "metrics disabled", {})
    return {"ok": True, "metrics": snapshot()}
