# src/taskos/api/app.py
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from taskos.api.errors import taskos_error_handler
from taskos.api.routes_public import public_router
from taskos.api.structured_logging import RequestLogMiddleware
from taskos.config import TaskosConfig, load_config
from taskos.errors import TaskosError
from taskos.ledger.client import LedgerReadClient, SuiJsonRpcClient
from taskos.storage.walrus import BlobStore, WalrusStorageClient


def create_app(
    *,
    config: Optional[TaskosConfig] = None,
    client: Optional[LedgerReadClient] = None,
    storage: Optional[BlobStore] = None,
    log_requests: bool = True,
) -> FastAPI:
    """Create the FastAPI application.

    Collaborators default to the HTTP clients built from `config`; tests pass
    in-memory ones instead. Nothing here performs network I/O.
    """
    cfg = config if config is not None else load_config()

    # Disable docs in production.
    if cfg.mode == "prod":
        app = FastAPI(title="TaskOS API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="TaskOS API")

    app.state.cfg = cfg
    app.state.ledger = client if client is not None else SuiJsonRpcClient.from_config(cfg)
    app.state.storage = storage if storage is not None else WalrusStorageClient.from_config(cfg)

    app.add_middleware(RequestLogMiddleware, enabled=log_requests)
    app.add_exception_handler(TaskosError, taskos_error_handler)

    app.include_router(public_router)
    return app
