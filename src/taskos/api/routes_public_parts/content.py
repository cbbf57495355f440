# src/taskos/api/routes_public_parts/content.py
from __future__ import annotations

import base64

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from taskos.api.routes_public_parts.common import _storage
from taskos.api.schemas import ContentDecryptRequest
from taskos.crypto.envelope import KeyMaterial, fetch_and_decrypt
from taskos.errors import ValidationError
from taskos.util.blob_id import validate_blob_id

router = APIRouter()


@router.post("/content/decrypt")
def decrypt_content(body: ContentDecryptRequest, request: Request):
    v = validate_blob_id(body.blob_id)
    if not v.ok:
        raise ValidationError(v.reason, "invalid blob id", {"blob_id": v.blob_id[:140]})
    if not body.task_id.strip() or not body.creator.strip():
        raise ValidationError("missing_key_material", "task_id and creator are required", {})

    res = fetch_and_decrypt(_storage(request), v.blob_id, KeyMaterial(body.task_id.strip(), body.creator.strip()))
    if not res.ok:
        # Wrong key or not our ciphertext: a well-formed request the content cannot satisfy.
        return JSONResponse(status_code=422, content={"ok": False, "reason": res.reason, "format": res.envelope_format})
    return {
        "ok": True,
        "blob_id": v.blob_id,
        "format": res.envelope_format,
        "size": len(res.plaintext or b""),
        "plaintext_b64": base64.b64encode(res.plaintext or b"").decode("ascii"),
    }
