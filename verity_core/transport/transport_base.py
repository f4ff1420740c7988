from __future__ import annotations
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from verity_core.errors import RemoteErrorCode, RemoteResolveError
from verity_core.utils import parse_iso


def _decoding_error(msg: str) -> RemoteResolveError:
    return RemoteResolveError(RemoteErrorCode.DECODING_ERROR, msg)


def _require_str(obj: Dict[str, Any], key: str, optional: bool = False) -> Optional[str]:
    value = obj.get(key)
    if value is None and optional:
        return None
    if not isinstance(value, str):
        raise _decoding_error(f"field {key!r} missing or not a string")
    return value


# largest TTL a timedelta can represent
MAX_CACHE_TTL = timedelta.max.total_seconds()


@dataclass
class ProductData:
    """
    Successful resolution payload. Mirrors the vendor body:

        {status, token_type, version,
         product: {product_id, name, category, description?, batch_id?, verified_at},
         cache_ttl}
    """
    status: str
    product_id: str
    name: str
    category: str
    verified_at: datetime
    cache_ttl: float
    description: Optional[str] = None
    batch_id: Optional[str] = None
    token_type: str = ""
    version: str = ""

    def __post_init__(self):
        if not math.isfinite(self.cache_ttl) or not 0 <= self.cache_ttl <= MAX_CACHE_TTL:
            raise _decoding_error(f"cache_ttl out of range: {self.cache_ttl!r}")

    @classmethod
    def from_response(cls, body: Any) -> "ProductData":
        if not isinstance(body, dict):
            raise _decoding_error("response body is not an object")
        product = body.get("product")
        if not isinstance(product, dict):
            raise _decoding_error("field 'product' missing or not an object")

        ttl = body.get("cache_ttl")
        if isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or ttl < 0:
            raise _decoding_error("field 'cache_ttl' missing or not a non-negative number")

        raw_verified = _require_str(product, "verified_at")
        try:
            verified_at = parse_iso(raw_verified)
        except ValueError:
            raise _decoding_error(f"unparseable verified_at {raw_verified!r}")

        return cls(
            status=_require_str(body, "status"),
            token_type=_require_str(body, "token_type", optional=True) or "",
            version=_require_str(body, "version", optional=True) or "",
            product_id=_require_str(product, "product_id"),
            name=_require_str(product, "name"),
            category=_require_str(product, "category"),
            description=_require_str(product, "description", optional=True),
            batch_id=_require_str(product, "batch_id", optional=True),
            verified_at=verified_at,
            cache_ttl=float(ttl),
        )


@dataclass
class TokenStatus:
    """Lightweight status-only check: {status, updated_at}."""
    status: str
    updated_at: datetime

    @classmethod
    def from_response(cls, body: Any) -> "TokenStatus":
        if not isinstance(body, dict):
            raise _decoding_error("response body is not an object")
        raw = _require_str(body, "updated_at")
        try:
            updated_at = parse_iso(raw)
        except ValueError:
            raise _decoding_error(f"unparseable updated_at {raw!r}")
        return cls(status=_require_str(body, "status"), updated_at=updated_at)


class BaseResolver:
    """
    Remote resolution contract consumed by the core.

    Implementations classify every transport outcome into RemoteResolveError
    before it reaches the orchestrator; the core never sees raw HTTP errors.
    Calls may block but must be time-bounded; a timeout surfaces as
    NETWORK_ERROR.
    """
    name: str = "base"

    def resolve(self, token: str) -> ProductData:
        raise NotImplementedError

    def check_status(self, token: str) -> TokenStatus:
        raise NotImplementedError

    def healthz(self) -> dict:
        return {"status": "ok", "resolver": self.name}

    def close(self) -> None:
        return
