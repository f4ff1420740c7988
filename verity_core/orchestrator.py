"""
verity_core.orchestrator
------------------------
Control flow tying validator → cache → remote resolver → queue together.

Two entry points:
- resolve_now(payload): the foreground scan path
- on_reconnect():       drain the offline queue once per offline→online edge

All collaborators are injected so tests can substitute the store, resolver
and clock. One orchestrator instance is the single logical actor for a
device session; a coarse re-entrant lock serialises both paths.
"""

from __future__ import annotations
import threading
from datetime import datetime
from typing import Callable, List, Optional

from .cache import ProductCache
from .constants import ALLOWED_HOST
from .errors import QueueFullError, RemoteErrorCode, RemoteResolveError, ScanQueuedError
from .logger import get_logger
from .queue import DrainReport, PendingQueue
from .revocation import RevocationPropagator
from .storage.models import CachedProduct, PendingResolutionEntry
from .storage.provider import StorageProvider
from .transport.transport_base import BaseResolver, ProductData
from .utils import to_iso, utc_now
from .validation import validate

log = get_logger("Verity.Orchestrator")


class ResolutionOrchestrator:
    def __init__(
        self,
        store: StorageProvider,
        resolver: BaseResolver,
        clock: Callable[[], datetime] = utc_now,
        cache: Optional[ProductCache] = None,
        queue: Optional[PendingQueue] = None,
        propagator: Optional[RevocationPropagator] = None,
        allowed_host: str = ALLOWED_HOST,
    ):
        self.store = store
        self.resolver = resolver
        self.clock = clock
        self.cache = cache or ProductCache(store, clock=clock)
        self.queue = queue or PendingQueue(store, clock=clock)
        self.propagator = propagator or RevocationPropagator(store)
        self.allowed_host = allowed_host
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Foreground scan path
    # ------------------------------------------------------------------
    def resolve_now(self, raw_payload: str) -> CachedProduct:
        """
        Resolve a scanned payload to a cached product.

        Raises:
            TokenValidationError: payload is not a valid product link.
            ScanQueuedError: device offline; the scan was queued for later.
            QueueFullError: device offline and the queue has no room.
            RemoteResolveError: any other vendor/transport failure (not queued).
                An unclassified resolver exception surfaces as UNAVAILABLE.
        """
        token = validate(raw_payload, allowed_host=self.allowed_host)
        return self.resolve_token(token)

    def resolve_token(self, token: str) -> CachedProduct:
        with self._lock:
            cached = self.cache.find_fresh(token)
            if cached is not None:
                log.info(f"[CACHE HIT] {token}")
                return cached

            try:
                data = self.resolver.resolve(token)
            except RemoteResolveError as e:
                if e.code is not RemoteErrorCode.NETWORK_ERROR:
                    log.info(f"[RESOLVE] {token} failed: {e.code.value}")
                    raise
                raise self._defer(token) from e
            except Exception as e:
                log.exception(f"[RESOLVE] unexpected failure resolving {token}")
                raise RemoteResolveError(RemoteErrorCode.UNAVAILABLE, str(e)) from e

            return self._settle(token, data)

    def _defer(self, token: str) -> ScanQueuedError:
        try:
            entry = self.queue.enqueue(token, scanned_at=self.clock())
        except QueueFullError as full:
            self.store.log_event("queue_full", {"token": token, "capacity": full.capacity})
            raise
        self.store.log_event("scan_queued", {"token": token, "scanned_at": to_iso(entry.scanned_at)})
        return ScanQueuedError(entry)

    def _settle(self, token: str, data: ProductData) -> CachedProduct:
        product = self.cache.upsert(token, data)
        deactivated = self.propagator.on_status_resolved(product)
        self.store.log_event("product_resolved", {
            "token": token,
            "product_id": product.product_id,
            "status": product.status.value,
        })
        if product.is_revoked:
            self.store.log_event("product_revoked", {
                "token": token,
                "product_id": product.product_id,
                "deactivated": deactivated,
            })
        return product

    # ------------------------------------------------------------------
    # Reconnect path
    # ------------------------------------------------------------------
    def on_reconnect(self) -> DrainReport:
        with self._lock:
            report = self.queue.drain(self.resolver.resolve, self._settle)
            self.store.log_event("drain_completed", report.to_dict())
            log.info(f"[DRAIN] done resolved={len(report.resolved)} failed={len(report.failed)} "
                     f"requeued={len(report.requeued)}")
            return report

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    def cached_products(self) -> List[CachedProduct]:
        return self.cache.all()

    def pending_entries(self) -> List[PendingResolutionEntry]:
        return self.queue.all()

    def retry_eligible(self) -> List[PendingResolutionEntry]:
        return self.queue.retry_eligible()
