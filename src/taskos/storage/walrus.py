# src/taskos/storage/walrus.py
from __future__ import annotations

import http.client
import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, Optional, Protocol, Tuple

from taskos.config import TaskosConfig
from taskos.errors import NotFoundError, StorageError, ValidationError
from taskos.ledger.option_value import as_dict
from taskos.util.blob_id import validate_blob_id
from taskos.util.log_events import log_event, warn_event

Json = Dict[str, Any]

log = logging.getLogger("taskos.storage")

BACKOFF_BASE_MS = 500
BACKOFF_CAP_MS = 2000


class BlobStore(Protocol):
    def get_blob(self, blob_id: str) -> bytes: ...


class BlobUploader(Protocol):
    def put_blob(self, data: bytes, *, epochs: Optional[int] = None) -> str: ...


def _sleep_ms(ms: int) -> None:
    if ms <= 0:
        return
    time.sleep(ms / 1000.0)


def compute_backoff_ms(attempts: int, *, base_ms: int = BACKOFF_BASE_MS, cap_ms: int = BACKOFF_CAP_MS) -> int:
    # attempts starts at 1 for the first failure; base * 2^(a-1), capped.
    a = max(1, int(attempts))
    base = max(1, int(base_ms))
    cap = max(base, int(cap_ms))
    return int(min(cap, base * (2 ** (a - 1))))


def _require_blob_id(blob_id: str) -> str:
    v = validate_blob_id(blob_id)
    if not v.ok:
        raise ValidationError(v.reason, "invalid blob id", {"blob_id": v.blob_id[:140]})
    return v.blob_id


def stored_blob_id(body: Json) -> str:
    """Blob id from a publisher response (fresh store or already certified)."""
    created = as_dict(as_dict(body.get("newlyCreated")).get("blobObject"))
    bid = created.get("blobId")
    if not bid:
        bid = as_dict(body.get("alreadyCertified")).get("blobId")
    return str(bid or "")


class WalrusStorageClient:
    """HTTP client for a Walrus aggregator (reads) and publisher (writes).

    Reads retry transient failures up to `retries` attempts with exponential
    backoff. A 404 is final: the blob does not exist (or has expired) and
    retrying will not change that. Writes are not retried.
    """

    def __init__(
        self,
        aggregator_url: str,
        publisher_url: str = "",
        *,
        timeout_s: float = 30.0,
        retries: int = 3,
        epochs: int = 3,
        sleep=_sleep_ms,
    ) -> None:
        self.aggregator_url = str(aggregator_url).rstrip("/")
        self.publisher_url = str(publisher_url or "").rstrip("/")
        self.timeout_s = float(timeout_s)
        self.retries = max(1, int(retries))
        self.epochs = max(1, int(epochs))
        self._sleep = sleep

    @classmethod
    def from_config(cls, cfg: TaskosConfig) -> "WalrusStorageClient":
        return cls(
            cfg.aggregator_url,
            cfg.publisher_url,
            timeout_s=cfg.storage_timeout_s,
            retries=cfg.storage_retries,
            epochs=cfg.store_epochs,
        )

    def _http(self, req: urllib.request.Request) -> Tuple[bool, bytes, int]:
        """Returns (ok, body, status). status 0 means no HTTP response."""
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
                status = int(getattr(resp, "status", 200))
                body = resp.read()
                return (200 <= status < 300), body, status
        except urllib.error.HTTPError as e:
            try:
                body = e.read()
            except Exception:
                body = str(e).encode("utf-8")
            return False, body or str(e).encode("utf-8"), int(getattr(e, "code", 0) or 0)
        except (urllib.error.URLError, TimeoutError, OSError, http.client.HTTPException) as e:
            return False, (str(e) or type(e).__name__).encode("utf-8"), 0

    # ----------------------------
    # Reads
    # ----------------------------

    def blob_url(self, blob_id: str) -> str:
        return f"{self.aggregator_url}/v1/blobs/{urllib.parse.quote(blob_id, safe='')}"

    def get_blob(self, blob_id: str) -> bytes:
        bid = _require_blob_id(blob_id)
        url = self.blob_url(bid)

        last = ""
        last_status = 0
        for attempt in range(1, self.retries + 1):
            req = urllib.request.Request(url=url, method="GET")
            req.add_header("Accept", "application/octet-stream")
            ok, body, status = self._http(req)
            if ok:
                log_event(log, "blob_fetched", blob_id=bid, size=len(body), attempts=attempt)
                return body
            if status == 404:
                raise NotFoundError("blob_not_found", "blob not found", {"blob_id": bid})

            last = body[:300].decode("utf-8", errors="replace")
            last_status = status
            warn_event(log, "blob_fetch_retry", blob_id=bid, attempt=attempt, status=status, error=last)
            if attempt < self.retries:
                self._sleep(compute_backoff_ms(attempt))

        raise StorageError(
            "blob_fetch_failed",
            f"blob fetch failed after {self.retries} attempts",
            {"blob_id": bid, "status": last_status, "error": last},
        )

    # ----------------------------
    # Writes
    # ----------------------------

    def put_blob(self, data: bytes, *, epochs: Optional[int] = None) -> str:
        if not self.publisher_url:
            raise StorageError("publisher_not_configured", "no Walrus publisher URL configured", {})
        n = self.epochs if epochs is None else int(epochs)
        if n <= 0:
            raise ValidationError("invalid_epochs", "epochs must be positive", {"epochs": n})

        url = f"{self.publisher_url}/v1/blobs?{urllib.parse.urlencode({'epochs': n})}"
        req = urllib.request.Request(url=url, method="PUT", data=bytes(data))
        req.add_header("Content-Type", "application/octet-stream")
        req.add_header("Accept", "application/json")

        ok, body, status = self._http(req)
        if not ok:
            raise StorageError(
                "blob_store_failed",
                f"publisher rejected blob (http {status})" if status else "publisher unreachable",
                {"status": status, "error": body[:300].decode("utf-8", errors="replace")},
            )
        try:
            parsed = json.loads(body.decode("utf-8"))
        except ValueError as e:
            raise StorageError("blob_store_bad_response", "publisher returned non-JSON", {}) from e

        bid = stored_blob_id(as_dict(parsed))
        if not bid:
            raise StorageError("blob_store_bad_response", "publisher response carries no blob id", {})
        log_event(log, "blob_stored", blob_id=bid, size=len(data), epochs=n)
        return bid
