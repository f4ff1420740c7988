"""
verity_core
===========
Scan-to-trusted-product pipeline for mobile clients.

Provides:
- Token validation for scanned QR / deep-link payloads
- A keyed product cache with TTL staleness and revocation state
- A bounded offline queue with per-token retry bookkeeping
- Revocation propagation into dependent routine records
- Pluggable storage (SQLite default, in-memory) and remote resolvers (HTTP, local)
"""

from .errors import (
    VerityError, TokenValidationError, ValidationCode, RemoteResolveError, RemoteErrorCode,
    QueueError, QueueFullError, ScanQueuedError,
)
from .validation import validate, is_valid_token
from .cache import ProductCache
from .queue import PendingQueue, DrainReport
from .revocation import RevocationPropagator
from .orchestrator import ResolutionOrchestrator
from .connectivity import ConnectivityMonitor
from .config import Settings, build_orchestrator

__all__ = [
    "VerityError",
    "TokenValidationError",
    "ValidationCode",
    "RemoteResolveError",
    "RemoteErrorCode",
    "QueueError",
    "QueueFullError",
    "ScanQueuedError",
    "validate",
    "is_valid_token",
    "ProductCache",
    "PendingQueue",
    "DrainReport",
    "RevocationPropagator",
    "ResolutionOrchestrator",
    "ConnectivityMonitor",
    "Settings",
    "build_orchestrator",
]
