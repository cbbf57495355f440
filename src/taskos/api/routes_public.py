# src/taskos/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from taskos.api.routes_public_parts.content import router as content_router
from taskos.api.routes_public_parts.health import router as health_router
from taskos.api.routes_public_parts.marketplace import router as marketplace_router
from taskos.api.routes_public_parts.tasks import router as tasks_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(tasks_router, prefix="/v1", tags=["tasks"])
public_router.include_router(marketplace_router, prefix="/v1", tags=["marketplace"])
public_router.include_router(content_router, prefix="/v1", tags=["content"])
