# verity_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from verity_core.constants import DEFAULT_CACHE_TTL
from verity_core.logger import get_logger
from verity_core.utils import utc_now, to_iso, parse_iso, new_id

log = get_logger("Verity.Models")


class ProductStatus(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "ProductStatus":
        """Vendor status string → enum. Unknown values are treated as active."""
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            log.warning(f"[STATUS] unknown vendor status {raw!r}, treating as active")
            return cls.ACTIVE


class PendingStatus(str, Enum):
    PENDING = "pending"
    RESOLVING = "resolving"
    FAILED = "failed"


@dataclass
class CachedProduct:
    """
    A vendor-verified product known to this device.

    Keyed by ``token``; storage providers keep at most one per token.
    Staleness is derived from ``cached_at + ttl`` at read time and never stored.
    """
    token: str
    product_id: str
    name: str
    category: str
    description: Optional[str] = None
    batch_id: Optional[str] = None
    verified_at: datetime = field(default_factory=utc_now)
    cached_at: datetime = field(default_factory=utc_now)
    ttl: float = DEFAULT_CACHE_TTL  # seconds
    status: ProductStatus = ProductStatus.ACTIVE

    @property
    def expires_at(self) -> datetime:
        try:
            return self.cached_at + timedelta(seconds=self.ttl)
        except OverflowError:
            # TTL runs past the calendar; never expires
            return datetime.max.replace(tzinfo=timezone.utc)

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        return (now or utc_now()) > self.expires_at

    @property
    def is_revoked(self) -> bool:
        return self.status is ProductStatus.REVOKED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "product_id": self.product_id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "batch_id": self.batch_id,
            "verified_at": to_iso(self.verified_at),
            "cached_at": to_iso(self.cached_at),
            "ttl": self.ttl,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CachedProduct":
        return cls(
            token=data["token"],
            product_id=data["product_id"],
            name=data["name"],
            category=data["category"],
            description=data.get("description"),
            batch_id=data.get("batch_id"),
            verified_at=parse_iso(data.get("verified_at")) or utc_now(),
            cached_at=parse_iso(data.get("cached_at")) or utc_now(),
            ttl=float(data.get("ttl", DEFAULT_CACHE_TTL)),
            status=ProductStatus.parse(data.get("status")),
        )


@dataclass
class PendingResolutionEntry:
    """A scan that could not be resolved because the device was offline."""
    token: str
    scanned_at: datetime = field(default_factory=utc_now)
    retry_count: int = 0
    last_retry_at: Optional[datetime] = None
    status: PendingStatus = PendingStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "scanned_at": to_iso(self.scanned_at),
            "retry_count": self.retry_count,
            "last_retry_at": to_iso(self.last_retry_at),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingResolutionEntry":
        return cls(
            token=data["token"],
            scanned_at=parse_iso(data.get("scanned_at")) or utc_now(),
            retry_count=int(data.get("retry_count", 0)),
            last_retry_at=parse_iso(data.get("last_retry_at")),
            status=PendingStatus(data.get("status", PendingStatus.PENDING.value)),
        )


@dataclass
class RoutineRecord:
    """
    Dependent record owned by the surrounding app (e.g. a daily routine that
    references a product). The core only ever deactivates these.
    """
    token: str
    product_id: str
    routine_id: str = field(default_factory=new_id)
    schedule: str = "daily"  # daily | weekly | as_needed | custom
    notes: Optional[str] = None
    linked_at: datetime = field(default_factory=utc_now)
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "routine_id": self.routine_id,
            "token": self.token,
            "product_id": self.product_id,
            "schedule": self.schedule,
            "notes": self.notes,
            "linked_at": to_iso(self.linked_at),
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoutineRecord":
        return cls(
            routine_id=data["routine_id"],
            token=data["token"],
            product_id=data["product_id"],
            schedule=data.get("schedule", "daily"),
            notes=data.get("notes"),
            linked_at=parse_iso(data.get("linked_at")) or utc_now(),
            is_active=bool(data.get("is_active", True)),
        )
