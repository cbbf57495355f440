# src/taskos/ledger/option_value.py
from __future__ import annotations

"""Decoding of Move ``Option<T>`` values as the fullnode emits them.

The same logical optional shows up in several JSON shapes depending on the
struct nesting and the RPC version:

  "value"                                          plain string
  ["value"] / []                                   bare vector
  {"vec": ["value"]} / {"vec": []}                 Option as a vector wrapper
  {"fields": {"some": "value"}}                    variant wrapper
  {"fields": {"some": {"fields": {"bytes": ...}}}} variant around a String struct

Shapes are tried in a fixed order and the first match wins. Some payloads
satisfy more than one shape (an object carrying both "vec" and "fields"), so
the order is part of the contract.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple


class OptionShape(str, Enum):
    ABSENT = "absent"
    PLAIN = "plain"
    LIST = "list"
    VEC_WRAPPER = "vec_wrapper"
    SOME_SCALAR = "some_scalar"
    SOME_BYTES = "some_bytes"
    UNKNOWN = "unknown"


# Returned by a recognizer that does not apply to the value.
_NO_MATCH = object()


def _scalar_text(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, str):
        return v
    if isinstance(v, list) and v and all(isinstance(b, int) and not isinstance(b, bool) for b in v):
        # vector<u8> rendered as a JSON array of byte values
        try:
            return bytes(v).decode("utf-8", errors="replace")
        except ValueError:
            return ""
    if isinstance(v, (dict, list, tuple)):
        # Struct or nested vector: no text form.
        return ""
    return str(v)


def _first_or_empty(items: Sequence[Any]) -> str:
    if not items:
        return ""
    return _scalar_text(items[0])


def _match_absent(v: Any) -> Any:
    return "" if v is None else _NO_MATCH


def _match_plain(v: Any) -> Any:
    return v if isinstance(v, str) else _NO_MATCH


def _match_list(v: Any) -> Any:
    return _first_or_empty(v) if isinstance(v, (list, tuple)) else _NO_MATCH


def _match_vec_wrapper(v: Any) -> Any:
    if isinstance(v, dict) and isinstance(v.get("vec"), list):
        return _first_or_empty(v["vec"])
    return _NO_MATCH


def _some_of(v: Any) -> Any:
    if not isinstance(v, dict):
        return None
    fields = v.get("fields")
    if not isinstance(fields, dict):
        return None
    return fields.get("some")


def _match_some_scalar(v: Any) -> Any:
    some = _some_of(v)
    return some if isinstance(some, str) else _NO_MATCH


def _match_some_bytes(v: Any) -> Any:
    some = _some_of(v)
    if not isinstance(some, dict):
        return _NO_MATCH
    inner = some.get("fields")
    if not isinstance(inner, dict):
        return _NO_MATCH
    raw = inner.get("bytes")
    if raw is None or raw == "" or raw == []:
        return _NO_MATCH
    return _scalar_text(raw)


_SHAPES: Tuple[Tuple[OptionShape, Callable[[Any], Any]], ...] = (
    (OptionShape.ABSENT, _match_absent),
    (OptionShape.PLAIN, _match_plain),
    (OptionShape.LIST, _match_list),
    (OptionShape.VEC_WRAPPER, _match_vec_wrapper),
    (OptionShape.SOME_SCALAR, _match_some_scalar),
    (OptionShape.SOME_BYTES, _match_some_bytes),
)


def classify_optional(raw: Any) -> Tuple[OptionShape, str]:
    """Return (matched shape, decoded text). Never raises."""
    for shape, recognize in _SHAPES:
        out = recognize(raw)
        if out is not _NO_MATCH:
            return shape, out
    return OptionShape.UNKNOWN, ""


def decode_optional_string(raw: Any) -> str:
    """Decode an optional string in any known wire shape; absent/unknown -> ""."""
    return classify_optional(raw)[1]


def decode_optional_int(raw: Any, default: int = 0) -> int:
    if isinstance(raw, bool):
        return int(default)
    if isinstance(raw, int):
        return raw
    return safe_int(decode_optional_string(raw), default)


def first_non_empty(*values: Any) -> str:
    """First value that decodes to a non-empty string, in argument order."""
    for v in values:
        s = decode_optional_string(v)
        if s:
            return s
    return ""


# ---- scalar coercions (soft-fail, default on anything unparseable) ----


def safe_int(v: Any, default: int = 0) -> int:
    if v is None or isinstance(v, bool):
        return int(default)
    try:
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return int(default)
            return int(s, 10)
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def safe_str(v: Any, default: str = "") -> str:
    """String value or default when the raw value is missing/empty/falsy."""
    if v is None or v == "" or v is False:
        return str(default)
    if isinstance(v, (dict, list)):
        s = decode_optional_string(v)
        return s if s else str(default)
    return str(v)


def as_dict(x: Any) -> Dict[str, Any]:
    return x if isinstance(x, dict) else {}


def as_list(x: Any) -> List[Any]:
    return x if isinstance(x, list) else []


def dig(obj: Any, *path: str) -> Optional[Any]:
    """Walk nested dicts; None if any hop is missing or not a dict."""
    cur = obj
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur
