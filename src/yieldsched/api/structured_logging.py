# src/yieldsched/api/structured_logging.py
from __future__ import annotations

import json
import logging
import os
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

Json = Dict[str, Any]

# request.state attributes the tx routes fill in for the access log.
TX_LOG_FIELDS = ("tx_type", "pool_id", "tx_code")


def _dumps(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


class JsonLineFormatter(logging.Formatter):
    """One JSON object per line.

    Records written by log_event() already carry a JSON body and get the level
    and logger merged in; anything else (uvicorn, tracebacks) is wrapped.
    """

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        body: Optional[Json] = None
        if msg.startswith("{"):
            try:
                parsed = json.loads(msg)
                body = parsed if isinstance(parsed, dict) else None
            except ValueError:
                body = None
        if body is None:
            body = {"ts_ms": int(record.created * 1000), "msg": msg}
        body["level"] = record.levelname
        body["logger"] = record.name
        if record.exc_info:
            body["exc"] = self.formatException(record.exc_info)
        return _dumps(body)


def configure_structured_logging(level_name: Optional[str] = None) -> None:
    """Send all logging to stdout as JSON lines.

    Level from the argument, else YIELDSCHED_LOG_LEVEL (default INFO). A second
    call only changes the level.
    """
    name = (level_name or os.environ.get("YIELDSCHED_LOG_LEVEL") or "INFO").strip().upper()
    level = getattr(logging, name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    if any(isinstance(h.formatter, JsonLineFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLineFormatter())
    root.handlers = [handler]


def log_event(logger: logging.Logger, event: str, **fields: Any) -> None:
    payload: Json = {"ts_ms": int(time.time() * 1000), "event": event}
    payload.update(fields)
    logger.info(_dumps(payload))


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Access log: one `http_request` event per request.

    Tx submissions also log the tx type, pool id and rejection code that the
    route stored on request.state. YIELDSCHED_LOG_REQUESTS=0 turns it off.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        raw = (os.environ.get("YIELDSCHED_LOG_REQUESTS") or "1").strip().lower()
        self._enabled = raw not in {"0", "false", "no", "n", "off"}
        self._logger = logging.getLogger("yieldsched.http")

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        if not self._enabled:
            return await call_next(request)

        started = time.monotonic()
        response = await call_next(request)
        response.headers.setdefault("x-request-id", request_id)

        fields: Json = {}
        for k in TX_LOG_FIELDS:
            v = getattr(request.state, k, None)
            if v is not None:
                fields[k] = v
        log_event(
            self._logger,
            "http_request",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=int((time.monotonic() - started) * 1000),
            **fields,
        )
        return response
