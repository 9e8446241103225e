from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Query, Request

from yieldsched.api.errors import ApiError
from yieldsched.api.routes_public_parts.common import _executor
from yieldsched.api.schemas import TxSubmitRequest

router = APIRouter()

Json = Dict[str, Any]


def _pool_id_of(body: TxSubmitRequest, receipt: Json) -> Any:
    # CREATE_POOL has no pool_id in its payload; the id is the call's result.
    pid = body.payload.get("pool_id")
    if pid is None and receipt.get("ok") and body.tx_type.strip().upper() == "CREATE_POOL":
        pid = receipt.get("result")
    return pid


@router.post("/tx/submit")
def tx_submit(request: Request, body: TxSubmitRequest) -> Json:
    """Apply one call and return its receipt.

    Rejections (admission or engine) are HTTP 400 carrying the receipt as details.
    """
    receipt = _executor(request).submit_tx(body.model_dump())

    request.state.tx_type = str(receipt.get("tx_type") or body.tx_type)
    request.state.pool_id = _pool_id_of(body, receipt)
    if not receipt.get("ok"):
        request.state.tx_code = str(receipt.get("code") or "tx_rejected")
        raise ApiError.bad_request(
            request.state.tx_code,
            str(receipt.get("reason") or "tx rejected"),
            {"receipt": receipt},
        )
    return receipt


@router.get("/receipts")
def receipts(request: Request, limit: int = Query(default=50, ge=1, le=1000)) -> Json:
    items = _executor(request).recent_receipts(limit=limit)
    return {"ok": True, "items": items}
