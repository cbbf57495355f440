# src/taskos/ledger/projector.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from taskos.ledger.option_value import (
    as_dict,
    decode_optional_string,
    dig,
    first_non_empty,
    safe_int,
    safe_str,
)
from taskos.ledger.raw import LedgerEvent, RawObject
from taskos.ledger.types import (
    COMPLETED_STATUSES,
    ExperienceEntity,
    LicenseType,
    ListingRecord,
    PurchaseRecord,
    RoleGrant,
    TaskEntity,
    TaskStatus,
)
from taskos.util.log_events import warn_event

log = logging.getLogger("taskos.ledger")

DEFAULT_DUE_OFFSET = timedelta(days=7)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

DEFAULT_SKILL = "Unknown Skill"
DEFAULT_DOMAIN = "General"
DEFAULT_DIFFICULTY = 3
DEFAULT_QUALITY_SCORE = 80
DEFAULT_PRIORITY = 1

DIFFICULTY_MIN = 1
DIFFICULTY_MAX = 5

_KNOWN_STATUSES = {int(s) for s in TaskStatus}


def _projectable(obj: Optional[RawObject], kind: str) -> bool:
    if obj is None or not obj.exists:
        warn_event(log, "projection_skipped", kind=kind, object_id=getattr(obj, "object_id", ""), reason="missing_object")
        return False
    if not obj.has_content:
        warn_event(log, "projection_skipped", kind=kind, object_id=obj.object_id, reason="no_content")
        return False
    if not obj.is_move_object:
        warn_event(
            log,
            "projection_skipped",
            kind=kind,
            object_id=obj.object_id,
            reason="not_move_object",
            data_type=obj.data_type,
        )
        return False
    return True


def ms_to_datetime(raw: Any) -> Optional[datetime]:
    """Millisecond epoch (int or decimal string) -> aware UTC datetime, else None."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        ms = int(str(raw).strip(), 10)
        return _EPOCH + timedelta(milliseconds=ms)
    except (TypeError, ValueError, OverflowError):
        return None


def _timestamp_field(obj: RawObject, name: str, raw: Any) -> Optional[datetime]:
    text = decode_optional_string(raw) if not isinstance(raw, int) else str(raw)
    if not text:
        return None
    dt = ms_to_datetime(text)
    if dt is None:
        warn_event(log, "bad_timestamp", object_id=obj.object_id, field=name, raw=str(text)[:64])
    return dt


def _option_text(raw: Any) -> str:
    """Option value, also accepting the {"fields": {"vec": [...]}} nesting."""
    s = decode_optional_string(raw)
    if s:
        return s
    return decode_optional_string(dig(raw, "fields", "vec"))


def table_id_of(raw: Any) -> str:
    """Extract a Table/Bag UID from the nestings the fullnode emits.

    Accepts {"fields": {"id": {"id": X}}}, {"fields": {"id": X}}, {"id": {"id": X}},
    {"id": X} and a bare X.
    """
    if isinstance(raw, str):
        return raw
    for path in (("fields", "id", "id"), ("fields", "id"), ("id", "id"), ("id",)):
        v = dig(raw, *path)
        if isinstance(v, str) and v:
            return v
    return ""


def _access_control_table_id(fields: dict) -> str:
    ac = fields.get("access_control")
    if ac is None:
        return ""
    # AccessControl { roles: Table<address, u8> }, possibly wrapped in an Option.
    for candidate in (dig(ac, "fields", "roles"), dig(ac, "fields", "value", "fields", "roles"), dig(ac, "roles")):
        tid = table_id_of(candidate)
        if tid:
            return tid
    for inner in (dig(ac, "vec"), dig(ac, "fields", "vec")):
        if isinstance(inner, list) and inner:
            tid = table_id_of(dig(inner[0], "fields", "roles"))
            if tid:
                return tid
    return ""


def project_task(obj: Optional[RawObject]) -> Optional[TaskEntity]:
    """RawObject -> TaskEntity, or None (logged) when the object is unusable."""
    if not _projectable(obj, "task"):
        return None
    assert obj is not None
    fields = obj.fields

    status = safe_int(fields.get("status"), -1)
    if status not in _KNOWN_STATUSES:
        warn_event(log, "unknown_task_status", object_id=obj.object_id, status=fields.get("status"))
    is_completed = status in {int(s) for s in COMPLETED_STATUSES}

    created_at = _timestamp_field(obj, "created_at", fields.get("created_at"))
    due_date = _timestamp_field(obj, "due_date", fields.get("due_date"))
    if due_date is None and created_at is not None:
        due_date = created_at + DEFAULT_DUE_OFFSET

    assignee = _option_text(fields.get("assignee"))
    acl_table = _access_control_table_id(fields)
    blob = first_non_empty(fields.get("content_blob_id"), fields.get("walrus_blob_id"))

    return TaskEntity(
        task_id=obj.object_id,
        title=safe_str(fields.get("title")),
        description=safe_str(fields.get("description")),
        creator=safe_str(fields.get("creator")),
        status=status,
        is_completed=is_completed,
        created_at=created_at,
        due_date=due_date,
        priority=safe_int(fields.get("priority"), DEFAULT_PRIORITY) or DEFAULT_PRIORITY,
        assignee=assignee or None,
        access_control_table_id=acl_table or None,
        content_blob_id=blob or None,
    )


def _rating(fields: dict) -> float:
    count = safe_int(fields.get("rating_count"), 0)
    if count <= 0:
        return 0.0
    return safe_int(fields.get("total_rating"), 0) / count


def _difficulty(raw: Any) -> int:
    d = safe_int(raw, DEFAULT_DIFFICULTY) or DEFAULT_DIFFICULTY
    return max(DIFFICULTY_MIN, min(DIFFICULTY_MAX, d))


def project_experience(obj: Optional[RawObject]) -> Optional[ExperienceEntity]:
    if not _projectable(obj, "experience"):
        return None
    assert obj is not None
    f = obj.fields

    description = obj.display_value("description") or decode_optional_string(f.get("description"))

    return ExperienceEntity(
        experience_id=obj.object_id,
        skill=safe_str(f.get("skill"), DEFAULT_SKILL),
        domain=safe_str(f.get("domain"), DEFAULT_DOMAIN),
        difficulty=_difficulty(f.get("difficulty")),
        quality_score=safe_int(f.get("quality_score"), DEFAULT_QUALITY_SCORE),
        price=safe_int(f.get("price"), 0),
        creator=safe_str(f.get("creator")) or safe_str(f.get("owner")) or obj.owner_address,
        rating=_rating(f),
        sold_count=safe_int(f.get("sold_count"), 0),
        content_blob_id=first_non_empty(
            f.get("walrus_content_blob_id"),
            f.get("walrus_result_blob_id"),
            f.get("walrus_blob_id"),
        ),
        access_policy_id=decode_optional_string(f.get("seal_policy_id")),
        time_spent=safe_int(f.get("time_spent"), 0),
        description=description,
    )


def project_purchase(
    purchase: Optional[RawObject],
    experience: Optional[RawObject],
    *,
    owner: str = "",
) -> Optional[PurchaseRecord]:
    """Join a Purchase object with the Experience it refers to."""
    if not _projectable(purchase, "purchase"):
        return None
    exp = project_experience(experience)
    if exp is None:
        return None
    assert purchase is not None
    pf = purchase.fields

    return PurchaseRecord(
        **{name: getattr(exp, name) for name in ExperienceEntity.__dataclass_fields__},
        purchase_id=purchase.object_id,
        buyer=safe_str(pf.get("buyer"), owner),
        seller=safe_str(pf.get("seller")),
        price_paid=safe_int(pf.get("price_paid"), 0),
        license_type=safe_int(pf.get("license_type"), 0),
        purchased_at=safe_int(pf.get("purchase_timestamp"), 0),
    )


def project_listing(
    event: LedgerEvent,
    listing: Optional[RawObject],
    experience: Optional[RawObject],
) -> Optional[ListingRecord]:
    """Listing record from the event plus its resolved objects.

    Current listing object fields win over the event payload; the event only
    fills gaps (the listing may have changed since the event was emitted).
    """
    exp = project_experience(experience)
    if exp is None:
        return None

    ev = event.parsed_json
    lf = listing.fields if listing is not None and listing.exists else {}
    listing_id = (listing.object_id if listing is not None and listing.exists else "") or safe_str(ev.get("listing_id"))
    if not listing_id:
        warn_event(log, "projection_skipped", kind="listing", object_id=exp.experience_id, reason="missing_listing_id")
        return None

    license_code = safe_int(lf.get("license_type", ev.get("license_type")), -1)
    license_type = LicenseType.from_code(license_code)
    if license_type is None:
        warn_event(log, "unknown_license_type", object_id=listing_id, license_type=license_code)

    copies = lf.get("available_copies", lf.get("copies", ev.get("copies")))

    return ListingRecord(
        listing_id=listing_id,
        experience=exp,
        seller=safe_str(lf.get("seller")) or safe_str(ev.get("seller")) or exp.creator,
        price=safe_int(lf.get("price", ev.get("price")), exp.price),
        license_type=license_type,
        copies_available=safe_int(copies, 0),
        event_timestamp_ms=event.timestamp_ms,
    )


def project_role_row(obj: Optional[RawObject], *, fallback_name: Any = None) -> Optional[RoleGrant]:
    """One Table<address, u8> row -> RoleGrant.

    The row struct is Field { id, name, value }; older packages used key/value.
    """
    if obj is None or not obj.exists or not obj.is_move_object:
        return None
    f = obj.fields
    address = f.get("name")
    if address is None:
        address = f.get("key")
    if address is None:
        address = fallback_name
    address_s = decode_optional_string(address) if not isinstance(address, (int, float)) else str(address)
    if not address_s:
        return None

    raw_role = f.get("value")
    if raw_role is None or isinstance(raw_role, (dict, list)):
        return None
    role = safe_int(raw_role, -1)
    if role < 0:
        return None
    return RoleGrant(address=address_s, role=role)


def registry_bucket_table_id(obj: Optional[RawObject]) -> str:
    """UID of the registry's status -> vector<ID> table, or ""."""
    if obj is None or not obj.exists or not obj.is_move_object:
        return ""
    return table_id_of(as_dict(obj.fields).get("tasks_by_status"))
