# src/taskos/ledger/raw.py
from __future__ import annotations

"""Raw ledger object model.

Thin, immutable wrappers over the fullnode's JSON responses. Nothing here
interprets application fields; that is the projector's job.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from taskos.ledger.option_value import as_dict, safe_int

Json = Dict[str, Any]

MOVE_OBJECT = "moveObject"


@dataclass(frozen=True, slots=True)
class RawObject:
    object_id: str
    owner: Any = None
    data_type: str = ""
    type: str = ""
    fields: Json = field(default_factory=dict)
    display: Json = field(default_factory=dict)
    version: str = ""
    error: str = ""

    @property
    def exists(self) -> bool:
        return bool(self.object_id) and not self.error

    @property
    def has_content(self) -> bool:
        return bool(self.data_type)

    @property
    def is_move_object(self) -> bool:
        return self.data_type == MOVE_OBJECT

    def display_value(self, key: str) -> str:
        v = self.display.get(key)
        if v is None:
            v = self.display.get(f"{key}#string")
        return str(v) if v else ""

    @property
    def owner_address(self) -> str:
        """Address of an address-owned object, else ""."""
        o = self.owner
        if isinstance(o, dict):
            return str(o.get("AddressOwner") or o.get("ObjectOwner") or "")
        return ""

    @classmethod
    def from_response(cls, resp: Any, *, requested_id: str = "") -> "RawObject":
        """Build from a `SuiObjectResponse`-shaped dict.

        Error-shaped entries ({"error": {"code": "notExists", ...}}) and
        missing data produce a RawObject whose `exists` is False.
        """
        r = as_dict(resp)
        err = r.get("error")
        data = r.get("data")
        if err or not isinstance(data, dict):
            e = as_dict(err)
            code = str(e.get("code") or ("missing_data" if not err else "error"))
            oid = str(e.get("object_id") or requested_id or "")
            return cls(object_id=oid, error=code)

        content = as_dict(data.get("content"))
        display = as_dict(as_dict(data.get("display")).get("data"))
        return cls(
            object_id=str(data.get("objectId") or requested_id or ""),
            owner=data.get("owner"),
            data_type=str(content.get("dataType") or ""),
            type=str(content.get("type") or data.get("type") or ""),
            fields=as_dict(content.get("fields")),
            display=display,
            version=str(data.get("version") or ""),
        )

    @classmethod
    def missing(cls, object_id: str, code: str = "notExists") -> "RawObject":
        return cls(object_id=object_id, error=code)


@dataclass(frozen=True, slots=True)
class DynamicFieldInfo:
    """One descriptor from a dynamic-field listing."""

    name: Json
    object_id: str = ""
    object_type: str = ""

    @property
    def name_type(self) -> str:
        return str(self.name.get("type") or "")

    @property
    def name_value(self) -> Any:
        return self.name.get("value")

    @classmethod
    def from_response(cls, item: Any) -> "DynamicFieldInfo":
        d = as_dict(item)
        name = d.get("name")
        if not isinstance(name, dict):
            name = {"type": "", "value": name}
        return cls(
            name=dict(name),
            object_id=str(d.get("objectId") or ""),
            object_type=str(d.get("objectType") or ""),
        )


@dataclass(frozen=True, slots=True)
class LedgerEvent:
    event_type: str
    parsed_json: Json = field(default_factory=dict)
    sender: str = ""
    tx_digest: str = ""
    event_seq: str = ""
    timestamp_ms: int = 0

    @classmethod
    def from_response(cls, item: Any) -> "LedgerEvent":
        d = as_dict(item)
        ident = as_dict(d.get("id"))
        return cls(
            event_type=str(d.get("type") or ""),
            parsed_json=as_dict(d.get("parsedJson")),
            sender=str(d.get("sender") or ""),
            tx_digest=str(ident.get("txDigest") or ""),
            event_seq=str(ident.get("eventSeq") or ""),
            timestamp_ms=safe_int(d.get("timestampMs"), 0),
        )


@dataclass(frozen=True, slots=True)
class SubmitResult:
    digest: str
    effects: Json = field(default_factory=dict)
