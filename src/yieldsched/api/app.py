from __future__ import annotations

import os
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from yieldsched.api.errors import install_error_handlers
from yieldsched.api.routes_public import public_router
from yieldsched.api.security import RequestSizeLimitMiddleware
from yieldsched.api.structured_logging import RequestLogMiddleware, configure_structured_logging
from yieldsched.runtime.chain_config import load_engine_config
from yieldsched.runtime.executor import StakingExecutor
from yieldsched.runtime.executor_boot import build_executor as _build_executor


def build_executor() -> StakingExecutor:
    """Build the executor for API runtime.

    This wrapper exists so tests can monkeypatch `yieldsched.api.app.build_executor`
    without reaching into runtime modules.
    """
    return _build_executor()


def _parse_cors_origins(mode: str) -> List[str]:
    """Parse CORS origins.

    Policy:
      - If YIELDSCHED_CORS_ORIGINS is unset/empty -> CORS disabled
      - Wildcard "*" is rejected in prod mode
    """
    raw = os.environ.get("YIELDSCHED_CORS_ORIGINS", "").strip()
    if not raw:
        return []

    origins = [o.strip() for o in raw.split(",") if o.strip()]
    if "*" in origins:
        if mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in YIELDSCHED_CORS_ORIGINS."
            )
        return ["*"]
    return origins


def create_app(*, boot_runtime: bool = True, executor: Optional[StakingExecutor] = None) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load engine config + attach an executor via build_executor()
      - False: attach only `executor` if given (tests), else nothing
    """
    if executor is None and boot_runtime:
        cfg = load_engine_config()
        os.environ.setdefault("YIELDSCHED_MODE", cfg.mode)
        configure_structured_logging(cfg.log_level)
        executor = build_executor()

    mode = os.environ.get("YIELDSCHED_MODE", "prod").strip().lower()

    if mode == "prod":
        app = FastAPI(title="Yield Scheduler API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="Yield Scheduler API")

    app.state.executor = executor

    install_error_handlers(app)

    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_middleware(RequestLogMiddleware)

    cors_origins = _parse_cors_origins(mode)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type"],
        )

    app.include_router(public_router)
    return app
