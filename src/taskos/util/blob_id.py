# src/taskos/util/blob_id.py
from __future__ import annotations

"""Walrus blob id validation.

Blob ids are URL-safe base64 (RFC 4648 section 5) without padding; a 32-byte
id encodes to 43 characters. Validation is lightweight: it rejects anything
that could change the meaning of the aggregator URL (slashes, dots, query
characters) and obviously truncated ids. It does not decode.
"""

import re
from dataclasses import dataclass


_BLOB_ID_RE = re.compile(r"^[A-Za-z0-9_-]{32,128}$")


@dataclass(frozen=True)
class BlobIdValidation:
    ok: bool
    reason: str
    blob_id: str


def normalize_blob_id(blob_id: str) -> str:
    return (blob_id or "").strip().rstrip("=")


def validate_blob_id(blob_id: str, *, max_len: int = 128) -> BlobIdValidation:
    b = normalize_blob_id(blob_id)
    if not b:
        return BlobIdValidation(False, "missing_blob_id", "")
    if len(b) > int(max_len):
        return BlobIdValidation(False, "blob_id_too_long", b)
    if _BLOB_ID_RE.match(b):
        return BlobIdValidation(True, "ok", b)
    return BlobIdValidation(False, "invalid_blob_id_format", b)
