# src/taskos/api/errors.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import Request
from fastapi.responses import JSONResponse

from taskos.errors import (
    ConfigurationError,
    LedgerRpcError,
    NotFoundError,
    StorageError,
    TaskosError,
    TransactionError,
    ValidationError,
)

Json = Dict[str, Any]

# Most specific first. Anything else is an upstream data problem.
_STATUS_BY_TYPE = (
    (ConfigurationError, 503),
    (NotFoundError, 404),
    (ValidationError, 400),
    (TransactionError, 502),
    (LedgerRpcError, 502),
    (StorageError, 502),
)


def status_for(err: TaskosError) -> int:
    for cls, status in _STATUS_BY_TYPE:
        if isinstance(err, cls):
            return status
    return 502


def error_body(err: TaskosError) -> Json:
    return {"ok": False, "error": err.to_json()}


async def taskos_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, TaskosError)
    return JSONResponse(status_code=status_for(exc), content=error_body(exc))
