# src/taskos/ledger/client.py
from __future__ import annotations

import http.client
import itertools
import json
import logging
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional, Protocol, Sequence

from taskos.config import TaskosConfig
from taskos.errors import LedgerRpcError
from taskos.ledger.option_value import as_dict, as_list
from taskos.ledger.raw import DynamicFieldInfo, LedgerEvent, RawObject, SubmitResult
from taskos.util.log_events import log_event

Json = Dict[str, Any]

log = logging.getLogger("taskos.ledger.rpc")

# Fullnode cap on ids per sui_multiGetObjects call.
MULTI_GET_LIMIT = 50
# Guard against a fullnode that keeps returning hasNextPage=True.
MAX_PAGES = 200


class LedgerReadClient(Protocol):
    def get_object(
        self,
        object_id: str,
        *,
        need_content: bool = True,
        need_owner: bool = False,
        need_display: bool = False,
    ) -> RawObject: ...

    def multi_get_objects(
        self,
        object_ids: Sequence[str],
        *,
        need_content: bool = True,
        need_owner: bool = False,
    ) -> List[RawObject]: ...

    def list_dynamic_fields(self, parent_id: str) -> List[DynamicFieldInfo]: ...

    def get_dynamic_field_object(self, parent_id: str, name: Json) -> RawObject: ...

    def query_events(self, event_type: str, *, limit: int = 50, descending: bool = True) -> List[LedgerEvent]: ...

    def get_owned_objects(self, owner: str, *, struct_type: str = "") -> List[RawObject]: ...


class TransactionSigner(Protocol):
    """Wallet-side collaborator: signs a transaction description and executes it."""

    def sign_and_submit(self, tx: Any) -> SubmitResult: ...


def _object_options(*, need_content: bool, need_owner: bool, need_display: bool = False) -> Json:
    return {
        "showContent": bool(need_content),
        "showOwner": bool(need_owner),
        "showDisplay": bool(need_display),
        "showType": True,
    }


class SuiJsonRpcClient:
    """Minimal Sui fullnode JSON-RPC client (read side).

    Every call is one blocking HTTP POST. Transport failures, non-2xx
    responses and JSON-RPC error objects all raise LedgerRpcError; callers
    that iterate over many items catch it per item.
    """

    def __init__(self, rpc_url: str, *, timeout_s: float = 15.0) -> None:
        self.rpc_url = str(rpc_url).rstrip("/")
        self.timeout_s = float(timeout_s)
        self._ids = itertools.count(1)

    @classmethod
    def from_config(cls, cfg: TaskosConfig) -> "SuiJsonRpcClient":
        return cls(cfg.rpc_url, timeout_s=cfg.rpc_timeout_s)

    # ----------------------------
    # Transport
    # ----------------------------

    def call(self, method: str, params: List[Any]) -> Any:
        body = json.dumps(
            {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params},
            separators=(",", ":"),
        ).encode("utf-8")
        req = urllib.request.Request(url=self.rpc_url, method="POST", data=body)
        req.add_header("Content-Type", "application/json")
        req.add_header("Accept", "application/json")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            try:
                detail = e.read().decode("utf-8", errors="replace")
            except Exception:
                detail = str(e)
            raise LedgerRpcError("rpc_http_error", f"{method} failed with http {e.code}", {"body": detail[:300]}) from e
        except urllib.error.URLError as e:
            raise LedgerRpcError("rpc_unreachable", f"{method} failed: {e.reason}", {"url": self.rpc_url}) from e
        except TimeoutError as e:
            raise LedgerRpcError("rpc_timeout", f"{method} timed out after {self.timeout_s}s", {}) from e
        except http.client.HTTPException as e:
            # Truncated or malformed HTTP response, e.g. IncompleteRead.
            raise LedgerRpcError("rpc_transport_error", f"{method} failed: {type(e).__name__}", {"url": self.rpc_url}) from e

        try:
            payload = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise LedgerRpcError("rpc_bad_response", f"{method} returned non-JSON", {"body": raw[:200].decode("utf-8", "replace")}) from e

        if not isinstance(payload, dict):
            raise LedgerRpcError("rpc_bad_response", f"{method} returned a non-object payload", {})
        err = payload.get("error")
        if err:
            e = as_dict(err)
            raise LedgerRpcError(
                "rpc_error",
                str(e.get("message") or f"{method} failed"),
                {"rpc_code": e.get("code"), "method": method},
            )
        return payload.get("result")

    def _paginate(self, method: str, params_for_cursor, *, limit: int = 0) -> List[Any]:
        out: List[Any] = []
        cursor: Optional[Any] = None
        for _ in range(MAX_PAGES):
            page = as_dict(self.call(method, params_for_cursor(cursor)))
            out.extend(as_list(page.get("data")))
            if limit and len(out) >= limit:
                return out[:limit]
            if not page.get("hasNextPage") or page.get("nextCursor") is None:
                return out
            cursor = page.get("nextCursor")
        log_event(log, "rpc_pagination_truncated", level=logging.WARNING, method=method, items=len(out))
        return out

    # ----------------------------
    # LedgerReadClient
    # ----------------------------

    def get_object(
        self,
        object_id: str,
        *,
        need_content: bool = True,
        need_owner: bool = False,
        need_display: bool = False,
    ) -> RawObject:
        res = self.call(
            "sui_getObject",
            [object_id, _object_options(need_content=need_content, need_owner=need_owner, need_display=need_display)],
        )
        return RawObject.from_response(res, requested_id=object_id)

    def multi_get_objects(
        self,
        object_ids: Sequence[str],
        *,
        need_content: bool = True,
        need_owner: bool = False,
    ) -> List[RawObject]:
        ids = [str(x) for x in object_ids]
        out: List[RawObject] = []
        opts = _object_options(need_content=need_content, need_owner=need_owner)
        for start in range(0, len(ids), MULTI_GET_LIMIT):
            chunk = ids[start : start + MULTI_GET_LIMIT]
            res = as_list(self.call("sui_multiGetObjects", [chunk, opts]))
            # Order-preserving, one entry per requested id.
            for i, oid in enumerate(chunk):
                item = res[i] if i < len(res) else {"error": {"code": "missing_entry"}}
                out.append(RawObject.from_response(item, requested_id=oid))
        return out

    def list_dynamic_fields(self, parent_id: str) -> List[DynamicFieldInfo]:
        items = self._paginate("suix_getDynamicFields", lambda cursor: [parent_id, cursor, None])
        return [DynamicFieldInfo.from_response(it) for it in items]

    def get_dynamic_field_object(self, parent_id: str, name: Json) -> RawObject:
        res = self.call("suix_getDynamicFieldObject", [parent_id, name])
        return RawObject.from_response(res)

    def query_events(self, event_type: str, *, limit: int = 50, descending: bool = True) -> List[LedgerEvent]:
        lim = max(1, int(limit))
        items = self._paginate(
            "suix_queryEvents",
            lambda cursor: [{"MoveEventType": event_type}, cursor, min(lim, 50), bool(descending)],
            limit=lim,
        )
        return [LedgerEvent.from_response(it) for it in items]

    def get_owned_objects(self, owner: str, *, struct_type: str = "") -> List[RawObject]:
        query: Json = {"options": _object_options(need_content=True, need_owner=True)}
        if struct_type:
            query["filter"] = {"StructType": struct_type}
        items = self._paginate("suix_getOwnedObjects", lambda cursor: [owner, query, cursor, None])
        return [RawObject.from_response(it) for it in items]
