# src/taskos/api/routes_public_parts/common.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from taskos.config import TaskosConfig
from taskos.errors import ConfigurationError
from taskos.ledger.client import LedgerReadClient
from taskos.ledger.registry import RegistryResolver, RegistrySnapshot
from taskos.storage.walrus import BlobStore

Json = Dict[str, Any]


def _config(request: Request) -> TaskosConfig:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise ConfigurationError("not_ready", "configuration not attached to app.state", {})
    return cfg


def _client(request: Request) -> LedgerReadClient:
    client = getattr(request.app.state, "ledger", None)
    if client is None:
        raise ConfigurationError("not_ready", "ledger client not attached to app.state", {})
    return client


def _storage(request: Request) -> BlobStore:
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise ConfigurationError("not_ready", "blob storage not attached to app.state", {})
    return storage


def _snapshot(request: Request) -> RegistrySnapshot:
    return RegistryResolver(_client(request), _config(request)).resolve()


def _int_param(v: Any, default: int, *, lo: int, hi: int) -> int:
    """Parse an int-ish query param safely and clamp it to [lo, hi]."""
    try:
        s = str(v).strip() if v is not None else ""
        n = int(s) if s else int(default)
    except ValueError:
        n = int(default)
    return max(lo, min(hi, n))
