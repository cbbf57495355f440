# src/taskos/api/routes_public_parts/tasks.py
from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from taskos.api.errors import status_for
from taskos.api.routes_public_parts.common import _snapshot
from taskos.errors import ValidationError

router = APIRouter()


@router.get("/tasks")
def list_tasks(request: Request):
    snap = _snapshot(request)
    body = snap.to_json()
    if not snap.ok and snap.error is not None:
        return JSONResponse(status_code=status_for(snap.error), content=body)
    return body


@router.get("/tasks/assigned/{address}")
def assigned_tasks(address: str, request: Request):
    addr = (address or "").strip()
    if not addr:
        raise ValidationError("missing_address", "address must be non-empty", {})
    snap = _snapshot(request)
    if not snap.ok and snap.error is not None:
        raise snap.error
    tasks = snap.assigned_to(addr)
    shared = snap.shared_with(addr)
    return {
        "ok": True,
        "address": addr,
        "assigned": [t.to_json() for t in tasks],
        "shared": [{"task": t.to_json(), "role": g.role} for t, g in shared],
    }
