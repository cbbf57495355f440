# src/taskos/api/routes_public_parts/health.py
from __future__ import annotations

import time

from fastapi import APIRouter, Request

from taskos.api.routes_public_parts.common import _config

router = APIRouter()


def _now_ms() -> int:
    return int(time.time() * 1000)


@router.get("/health")
def v1_health(request: Request) -> dict[str, object]:
    # Liveness only: never touches the ledger or storage.
    cfg = _config(request)
    return {
        "ok": True,
        "service": "taskos",
        "version": "v1",
        "ts_ms": _now_ms(),
        "mode": cfg.mode,
        "package_configured": cfg.has_package,
        "registry_configured": cfg.has_registry,
        "rpc_url": cfg.rpc_url,
        "aggregator_url": cfg.aggregator_url,
    }
