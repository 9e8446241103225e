from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from yieldsched.api.routes_public_parts.common import _executor

router = APIRouter()


@router.get("/health")
def health(request: Request) -> Dict[str, Any]:
    ex = _executor(request)
    st = ex.read_state()
    return {
        "ok": True,
        "chain_id": str(st.get("chain_id") or ""),
        "height": int(st.get("height") or 0),
        "last_ts": int(st.get("last_ts") or 0),
        "state_version": int(st.get("state_version") or 0),
        "persistent": bool(ex.db_path),
    }
