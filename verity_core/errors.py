"""
verity_core.errors
------------------
Typed failure taxonomy for the scan → resolve → cache → queue pipeline.

- Validation errors are user input problems: never retried, surfaced verbatim.
- Remote errors are either terminal for the token (NOT_FOUND, INACTIVE) or
  transient. Only NETWORK_ERROR sends a scan to the offline queue.
- Queue capacity exhaustion is its own, user-actionable error.
"""

from __future__ import annotations
from enum import Enum
from typing import Optional


class VerityError(Exception):
    pass


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------
class ValidationCode(str, Enum):
    MALFORMED_URL = "malformed_url"
    INVALID_SCHEME = "invalid_scheme"
    INVALID_DOMAIN = "invalid_domain"
    INVALID_PATH = "invalid_path"
    INVALID_TOKEN_FORMAT = "invalid_token_format"


_VALIDATION_MESSAGES = {
    ValidationCode.MALFORMED_URL: "This code could not be read. Please scan a product code.",
    ValidationCode.INVALID_SCHEME: "This code is not a secure product link.",
    ValidationCode.INVALID_DOMAIN: "This code was not issued for a verified product.",
    ValidationCode.INVALID_PATH: "This link does not point to a product.",
    ValidationCode.INVALID_TOKEN_FORMAT: "This product code is missing or malformed.",
}


class TokenValidationError(VerityError, ValueError):
    def __init__(self, code: ValidationCode, detail: str = ""):
        self.code = code
        self.detail = detail
        super().__init__(_VALIDATION_MESSAGES[code])

    def __eq__(self, other):
        if isinstance(other, TokenValidationError):
            return self.code == other.code
        return NotImplemented

    def __hash__(self):
        return hash(self.code)

    def __repr__(self):
        return f"TokenValidationError({self.code.value!r})"


# ---------------------------------------------------------------------------
# Remote resolution
# ---------------------------------------------------------------------------
class RemoteErrorCode(str, Enum):
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    DECODING_ERROR = "decoding_error"

    @classmethod
    def from_status(cls, status_code: int) -> "RemoteErrorCode":
        return {
            404: cls.NOT_FOUND,
            410: cls.INACTIVE,
            429: cls.RATE_LIMITED,
            503: cls.UNAVAILABLE,
        }.get(status_code, cls.SERVER_ERROR)

    @property
    def terminal(self) -> bool:
        # the vendor made a definitive statement about this token
        return self in (RemoteErrorCode.NOT_FOUND, RemoteErrorCode.INACTIVE)

    @property
    def transient(self) -> bool:
        return not self.terminal


class RemoteResolveError(VerityError):
    def __init__(self, code: RemoteErrorCode, message: str = "", retry_after: Optional[int] = None,
                 status_code: Optional[int] = None):
        self.code = code
        self.retry_after = retry_after
        self.status_code = status_code
        super().__init__(message or code.value)

    @property
    def terminal(self) -> bool:
        return self.code.terminal

    @property
    def transient(self) -> bool:
        return self.code.transient

    def __repr__(self):
        return f"RemoteResolveError({self.code.value!r}, status={self.status_code})"


# ---------------------------------------------------------------------------
# Offline queue
# ---------------------------------------------------------------------------
class QueueError(VerityError):
    pass


class QueueFullError(QueueError):
    def __init__(self, token: str, capacity: int):
        self.token = token
        self.capacity = capacity
        super().__init__(
            "We couldn't verify this product. You can try scanning it again."
        )


class ScanQueuedError(VerityError):
    """The device is offline; the scan is held in the pending queue for later resolution."""

    def __init__(self, entry):
        self.entry = entry
        super().__init__(f"Offline: {entry.token} queued for verification when back online.")
