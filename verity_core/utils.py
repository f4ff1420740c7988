"""
verity_core.utils
-----------------
Lightweight helpers for UUID generation, UTC timestamps, ISO-8601 conversion
and canonical JSON serialization used by storage and audit logging.
"""

from __future__ import annotations
import json, uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    # fixed precision keeps stored strings chronologically sortable
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC3339 / ISO 8601 string into an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return utc_now().strftime("%Y-%m-%dT%H:%M:%SZ")


def new_id() -> str:
    return uuid.uuid4().hex


def canonical_json(obj: Dict[str, Any]) -> str:
    # Deterministic, minimal JSON for audit payloads
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False, default=str)
