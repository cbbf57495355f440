# src/taskos/ledger/dynamic_fields.py
from __future__ import annotations

"""Walking dynamic-field tables.

A Move Table lives under its own UID; each entry is a dynamic field object
whose content is Field { id, name, value }. The same walk serves two call
sites:

  - the registry's status -> vector<ID> buckets (flatten_bucketed_ids)
  - a task's address -> role-code access table (read_role_table)

One bad child never aborts the walk: it is logged and skipped.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from taskos.errors import TaskosError
from taskos.ledger.client import LedgerReadClient
from taskos.ledger.projector import project_role_row, table_id_of
from taskos.ledger.raw import DynamicFieldInfo, RawObject
from taskos.ledger.types import RoleGrant
from taskos.util.log_events import warn_event

log = logging.getLogger("taskos.ledger")

T = TypeVar("T")

Json = Dict[str, Any]

__all__ = [
    "flatten_bucketed_ids",
    "list_children",
    "read_child",
    "read_role_table",
    "table_id_of",
    "walk_children",
]


def list_children(client: LedgerReadClient, parent_id: str) -> List[DynamicFieldInfo]:
    return list(client.list_dynamic_fields(parent_id))


def read_child(client: LedgerReadClient, parent_id: str, name: Json) -> RawObject:
    return client.get_dynamic_field_object(parent_id, name)


def walk_children(
    client: LedgerReadClient,
    parent_id: str,
    interpret: Callable[[DynamicFieldInfo, RawObject], Optional[T]],
    *,
    context: str = "table",
) -> List[T]:
    """Read every child of `parent_id` and keep the non-None interpretations.

    Enumeration failure of the parent itself propagates: without the listing
    there is nothing to isolate. Per-child read failures, error-shaped
    children and children that `interpret` rejects are skipped.
    """
    out: List[T] = []
    for info in list_children(client, parent_id):
        try:
            obj = read_child(client, parent_id, info.name)
        except (TaskosError, OSError) as e:
            warn_event(log, "dynamic_field_read_failed", context=context, parent_id=parent_id, name=info.name, error=str(e))
            continue
        if not obj.exists:
            warn_event(log, "dynamic_field_missing", context=context, parent_id=parent_id, name=info.name, error=obj.error)
            continue
        item = interpret(info, obj)
        if item is None:
            warn_event(log, "dynamic_field_skipped", context=context, parent_id=parent_id, name=info.name)
            continue
        out.append(item)
    return out


def _bucket_ids(info: DynamicFieldInfo, obj: RawObject) -> Optional[Tuple[str, ...]]:
    value = obj.fields.get("value")
    if not isinstance(value, list):
        return None
    return tuple(str(v) for v in value if isinstance(v, str) and v)


def flatten_bucketed_ids(client: LedgerReadClient, table_id: str) -> List[str]:
    """All ids across every status bucket, de-duplicated, first occurrence kept.

    Bucket order follows the fullnode's enumeration order, which is not
    stable; only display should depend on it.
    """
    seen: set[str] = set()
    out: List[str] = []
    for bucket in walk_children(client, table_id, _bucket_ids, context="status_buckets"):
        for oid in bucket:
            if oid not in seen:
                seen.add(oid)
                out.append(oid)
    return out


def _role_row(info: DynamicFieldInfo, obj: RawObject) -> Optional[RoleGrant]:
    return project_role_row(obj, fallback_name=info.name_value)


def read_role_table(client: LedgerReadClient, table_id: str) -> List[RoleGrant]:
    """Role grants of one access table, one per address (first row wins)."""
    seen: set[str] = set()
    out: List[RoleGrant] = []
    for grant in walk_children(client, table_id, _role_row, context="role_table"):
        key = grant.address.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(grant)
    return out
