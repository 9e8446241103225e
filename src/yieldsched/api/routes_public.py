# src/yieldsched/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from yieldsched.api.routes_public_parts.clock import router as clock_router
from yieldsched.api.routes_public_parts.health import router as health_router
from yieldsched.api.routes_public_parts.metrics import router as metrics_router
from yieldsched.api.routes_public_parts.pools import router as pools_router
from yieldsched.api.routes_public_parts.stakes import router as stakes_router
from yieldsched.api.routes_public_parts.stats import router as stats_router
from yieldsched.api.routes_public_parts.tx import router as tx_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(clock_router, prefix="/v1", tags=["clock"])
public_router.include_router(stats_router, prefix="/v1", tags=["stats"])
public_router.include_router(pools_router, prefix="/v1", tags=["pools"])
public_router.include_router(stakes_router, prefix="/v1", tags=["stakes"])
public_router.include_router(tx_router, prefix="/v1", tags=["tx"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])
