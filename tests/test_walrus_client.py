from __future__ import annotations

import http.client
import io
import json
import urllib.error
import urllib.request
from typing import List

import pytest

from taskos.errors import NotFoundError, StorageError, ValidationError
from taskos.storage.walrus import WalrusStorageClient, compute_backoff_ms, stored_blob_id
from taskos.util.blob_id import validate_blob_id

BLOB_ID = "M4hsZGQ1oCktdzegB6HnI6Mi28S2nqOPHxK-W7_4BUk"


class _Resp:
    def __init__(self, body: bytes, status: int = 200) -> None:
        self._body = body
        self.status = status

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "_Resp":
        return self

    def __exit__(self, *exc) -> None:
        return None


def _http_error(url: str, code: int, body: bytes = b"") -> urllib.error.HTTPError:
    return urllib.error.HTTPError(url, code, "err", {}, io.BytesIO(body))


def _mk_client(**kw) -> tuple[WalrusStorageClient, List[int]]:
    sleeps: List[int] = []
    c = WalrusStorageClient(
        "https://aggregator.example",
        "https://publisher.example",
        timeout_s=5,
        sleep=sleeps.append,
        **kw,
    )
    return c, sleeps


def test_get_blob(monkeypatch) -> None:
    seen: List[urllib.request.Request] = []

    def fake_urlopen(req, timeout=None):
        seen.append(req)
        return _Resp(b"\x01\x02")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    c, sleeps = _mk_client()

    assert c.get_blob(BLOB_ID) == b"\x01\x02"
    assert seen[0].full_url == f"https://aggregator.example/v1/blobs/{BLOB_ID}"
    assert seen[0].get_method() == "GET"
    assert sleeps == []


def test_get_blob_retries_with_backoff_then_succeeds(monkeypatch) -> None:
    attempts = {"n": 0}

    def fake_urlopen(req, timeout=None):
        attempts["n"] += 1
        if attempts["n"] < 3:
            raise _http_error(req.full_url, 503, b"busy")
        return _Resp(b"ok")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    c, sleeps = _mk_client(retries=3)

    assert c.get_blob(BLOB_ID) == b"ok"
    assert sleeps == [500, 1000]


def test_get_blob_gives_up_after_retries(monkeypatch) -> None:
    def fake_urlopen(req, timeout=None):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    c, sleeps = _mk_client(retries=3)

    with pytest.raises(StorageError) as ei:
        c.get_blob(BLOB_ID)
    assert ei.value.code == "blob_fetch_failed"
    assert sleeps == [500, 1000]


def test_get_blob_404_is_final(monkeypatch) -> None:
    calls = {"n": 0}

    def fake_urlopen(req, timeout=None):
        calls["n"] += 1
        raise _http_error(req.full_url, 404)

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    c, sleeps = _mk_client(retries=3)

    with pytest.raises(NotFoundError):
        c.get_blob(BLOB_ID)
    assert calls["n"] == 1
    assert sleeps == []


def test_get_blob_rejects_bad_ids_without_io(monkeypatch) -> None:
    def fake_urlopen(req, timeout=None):
        raise AssertionError("no request expected")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    c, _ = _mk_client()
    for bad in ("", "../../etc/passwd", "abc", BLOB_ID + "?x=1"):
        with pytest.raises(ValidationError):
            c.get_blob(bad)


def test_put_blob_newly_created(monkeypatch) -> None:
    seen: List[urllib.request.Request] = []
    body = {"newlyCreated": {"blobObject": {"id": "0xOBJ", "blobId": BLOB_ID}, "cost": 1}}

    def fake_urlopen(req, timeout=None):
        seen.append(req)
        return _Resp(json.dumps(body).encode("utf-8"))

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    c, _ = _mk_client(epochs=5)

    assert c.put_blob(b"payload") == BLOB_ID
    assert seen[0].get_method() == "PUT"
    assert seen[0].full_url == "https://publisher.example/v1/blobs?epochs=5"
    assert seen[0].data == b"payload"


def test_put_blob_publisher_error(monkeypatch) -> None:
    def fake_urlopen(req, timeout=None):
        raise _http_error(req.full_url, 500, b"boom")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    c, sleeps = _mk_client()
    with pytest.raises(StorageError) as ei:
        c.put_blob(b"payload", epochs=1)
    assert ei.value.code == "blob_store_failed"
    assert sleeps == []


def test_stored_blob_id_shapes() -> None:
    assert stored_blob_id({"alreadyCertified": {"blobId": "abc", "endEpoch": 9}}) == "abc"
    assert stored_blob_id({"newlyCreated": {"blobObject": {"blobId": "def"}}}) == "def"
    assert stored_blob_id({}) == ""


def test_backoff_is_capped() -> None:
    assert [compute_backoff_ms(a) for a in (1, 2, 3, 4, 5)] == [500, 1000, 2000, 2000, 2000]


def test_validate_blob_id() -> None:
    assert validate_blob_id(f"  {BLOB_ID} ").ok
    assert validate_blob_id(BLOB_ID + "=").blob_id == BLOB_ID
    assert validate_blob_id("").reason == "missing_blob_id"
    assert validate_blob_id("x" * 200).reason == "blob_id_too_long"
    assert validate_blob_id("has/slash" * 5).reason == "invalid_blob_id_format"


class _TruncatedResp(_Resp):
    def read(self) -> bytes:
        raise http.client.IncompleteRead(b"\x01", 4)


def test_get_blob_retries_truncated_body(monkeypatch) -> None:
    attempts = {"n": 0}

    def fake_urlopen(req, timeout=None):
        attempts["n"] += 1
        if attempts["n"] == 1:
            return _TruncatedResp(b"")
        return _Resp(b"full")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    c, sleeps = _mk_client(retries=3)

    assert c.get_blob(BLOB_ID) == b"full"
    assert sleeps == [500]
