from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from yieldsched.api.routes_public_parts.common import _executor

router = APIRouter()


@router.get("/stats")
def stats(request: Request) -> Dict[str, Any]:
    return {"ok": True, "stats": _executor(request).get_protocol_stats()}
