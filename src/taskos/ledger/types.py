"""taskos.ledger.types

Typed, immutable application records projected out of raw ledger objects.

Every record is a value object: once projected it holds no reference to the
RawObject it came from. `to_json()` yields a JSON-safe dict for the HTTP API
and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, Optional

Json = Dict[str, Any]


def _iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat().replace("+00:00", "Z")


class TaskStatus(IntEnum):
    TODO = 0
    IN_PROGRESS = 1
    COMPLETED = 2
    APPROVED = 3


COMPLETED_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.APPROVED})


class LicenseType(str, Enum):
    PERSONAL = "personal"
    COMMERCIAL = "commercial"
    EXCLUSIVE = "exclusive"
    SUBSCRIPTION = "subscription"
    VIEW_ONLY = "view_only"

    @property
    def code(self) -> int:
        return _LICENSE_CODES[self]

    @classmethod
    def from_code(cls, code: int) -> Optional["LicenseType"]:
        for lic, c in _LICENSE_CODES.items():
            if c == code:
                return lic
        return None


_LICENSE_CODES: Dict[LicenseType, int] = {
    LicenseType.PERSONAL: 0,
    LicenseType.COMMERCIAL: 1,
    LicenseType.EXCLUSIVE: 2,
    LicenseType.SUBSCRIPTION: 3,
    LicenseType.VIEW_ONLY: 4,
}


@dataclass(frozen=True, slots=True)
class TaskEntity:
    task_id: str
    title: str
    description: str
    creator: str
    status: int
    is_completed: bool
    created_at: Optional[datetime]
    due_date: Optional[datetime]
    priority: int
    assignee: Optional[str] = None
    access_control_table_id: Optional[str] = None
    content_blob_id: Optional[str] = None

    def to_json(self) -> Json:
        return {
            "id": self.task_id,
            "title": self.title,
            "description": self.description,
            "creator": self.creator,
            "status": self.status,
            "is_completed": self.is_completed,
            "created_at": _iso(self.created_at),
            "due_date": _iso(self.due_date),
            "priority": self.priority,
            "assignee": self.assignee,
            "access_control_table_id": self.access_control_table_id,
            "content_blob_id": self.content_blob_id,
        }


@dataclass(frozen=True, slots=True)
class RoleGrant:
    address: str
    role: int

    def to_json(self) -> Json:
        return {"address": self.address, "role": self.role}


@dataclass(frozen=True, slots=True)
class ExperienceEntity:
    experience_id: str
    skill: str
    domain: str
    difficulty: int
    quality_score: int
    price: int
    creator: str
    rating: float
    sold_count: int
    content_blob_id: str
    access_policy_id: str
    time_spent: int
    description: str

    def to_json(self) -> Json:
        return {
            "id": self.experience_id,
            "skill": self.skill,
            "domain": self.domain,
            "difficulty": self.difficulty,
            "quality_score": self.quality_score,
            "price": self.price,
            "creator": self.creator,
            "rating": self.rating,
            "sold_count": self.sold_count,
            "content_blob_id": self.content_blob_id,
            "access_policy_id": self.access_policy_id,
            "time_spent": self.time_spent,
            "description": self.description,
        }


@dataclass(frozen=True, slots=True)
class PurchaseRecord(ExperienceEntity):
    purchase_id: str
    buyer: str
    seller: str
    price_paid: int
    license_type: int
    purchased_at: int

    def to_json(self) -> Json:
        out = ExperienceEntity.to_json(self)
        out.update(
            {
                "purchase_id": self.purchase_id,
                "buyer": self.buyer,
                "seller": self.seller,
                "price_paid": self.price_paid,
                "license_type": self.license_type,
                "purchased_at": self.purchased_at,
            }
        )
        return out


@dataclass(frozen=True, slots=True)
class ListingRecord:
    listing_id: str
    experience: ExperienceEntity
    seller: str
    price: int
    license_type: Optional[LicenseType]
    copies_available: int
    event_timestamp_ms: int = 0

    def to_json(self) -> Json:
        return {
            "listing_id": self.listing_id,
            "experience": self.experience.to_json(),
            "seller": self.seller,
            "price": self.price,
            "license_type": self.license_type.value if self.license_type is not None else None,
            "copies_available": self.copies_available,
            "event_timestamp_ms": self.event_timestamp_ms,
        }
