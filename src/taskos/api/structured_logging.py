# src/taskos/api/structured_logging.py
from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from taskos.util.log_events import log_event

Json = Dict[str, Any]

_LOGGED_HEADERS = ("user-agent", "content-type", "content-length", "x-forwarded-for")


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One JSONL `http_request` line per request, plus an x-request-id header.

    log_headers=True adds a small fixed header subset to each line.
    """

    def __init__(self, app, *, enabled: bool = True, log_headers: bool = False) -> None:
        super().__init__(app)
        self._enabled = bool(enabled)
        self._log_headers = bool(log_headers)
        self._logger = logging.getLogger("taskos.http")

    def _header_subset(self, request: Request) -> Json:
        if not self._log_headers:
            return {}
        out: Json = {}
        for k in _LOGGED_HEADERS:
            v = request.headers.get(k)
            if v:
                out[k] = v
        return out

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        started = time.monotonic()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id

        status = 500
        err: Optional[str] = None
        response: Optional[Response] = None

        try:
            response = await call_next(request)
            status = int(getattr(response, "status_code", 200) or 200)
            return response
        except Exception as e:
            err = str(e)
            raise
        finally:
            log_event(
                self._logger,
                "http_request",
                level=logging.INFO if status < 500 else logging.WARNING,
                request_id=request_id,
                method=request.method,
                path=str(request.url.path or ""),
                status=status,
                duration_ms=int((time.monotonic() - started) * 1000),
                client=str(getattr(request.client, "host", "")) if request.client else "",
                headers=self._header_subset(request),
                error=err,
            )
            if response is not None:
                response.headers.setdefault("x-request-id", request_id)
