# src/rankmint/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from rankmint.api.routes_public_parts.admin import router as admin_router
from rankmint.api.routes_public_parts.allowlist import router as allowlist_router
from rankmint.api.routes_public_parts.health import router as health_router
from rankmint.api.routes_public_parts.issuance import router as issuance_router
from rankmint.api.routes_public_parts.metrics import router as metrics_router
from rankmint.api.routes_public_parts.state import router as state_router

public_router = APIRouter()

# Versioned API surface
public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(state_router, prefix="/v1", tags=["state"])
public_router.include_router(issuance_router, prefix="/v1", tags=["issuance"])
public_router.include_router(allowlist_router, prefix="/v1", tags=["allowlist"])
public_router.include_router(admin_router, prefix="/v1", tags=["admin"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])
