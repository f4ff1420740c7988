"""
verity_core.queue
-----------------
Bounded, deduplicated queue of scans that could not be resolved while the
device was offline.

Policy:
- at most one entry per token; re-enqueueing is a silent no-op
- at most QUEUE_CAPACITY entries in PENDING; a full queue is a hard failure
  (QueueFullError), never an eviction
- an entry is retried at most MAX_RETRIES times, oldest scan first; after
  that it stays stored as FAILED so the user can still see it
- an entry left RESOLVING by an interrupted drain goes back to the retry
  pool on the next start or drain
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from .constants import MAX_RETRIES, QUEUE_CAPACITY
from .errors import QueueFullError, RemoteErrorCode, RemoteResolveError
from .logger import get_logger
from .storage.models import CachedProduct, PendingResolutionEntry, PendingStatus
from .storage.provider import StorageProvider
from .transport.transport_base import ProductData
from .utils import utc_now

log = get_logger("Verity.Queue")

ResolveCall = Callable[[str], ProductData]
OnResolved = Callable[[str, ProductData], CachedProduct]


@dataclass
class DrainReport:
    resolved: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    requeued: List[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.resolved) + len(self.failed) + len(self.requeued)

    def to_dict(self) -> dict:
        return {"resolved": list(self.resolved), "failed": list(self.failed), "requeued": list(self.requeued)}


class PendingQueue:
    def __init__(self, store: StorageProvider, clock: Callable[[], datetime] = utc_now,
                 capacity: int = QUEUE_CAPACITY, max_retries: int = MAX_RETRIES):
        self.store = store
        self.clock = clock
        self.capacity = capacity
        self.max_retries = max_retries
        self.recover_interrupted()

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------
    def pending_count(self) -> int:
        return self.store.count_pending(lambda e: e.status is PendingStatus.PENDING)

    def enqueue(self, token: str, scanned_at: Optional[datetime] = None) -> PendingResolutionEntry:
        existing = self.store.get_pending(token)
        if existing is not None:
            log.debug(f"[QUEUE] {token} already queued ({existing.status.value})")
            return existing

        if self.pending_count() >= self.capacity:
            log.warning(f"[QUEUE FULL] rejecting {token}, capacity={self.capacity}")
            raise QueueFullError(token, self.capacity)

        entry = PendingResolutionEntry(token=token, scanned_at=scanned_at or self.clock())
        self.store.save_pending(entry)
        log.info(f"[QUEUE] {token} queued")
        return entry

    def retry_eligible(self) -> List[PendingResolutionEntry]:
        # store returns entries ordered by scanned_at ascending
        return self.store.list_pending(
            lambda e: e.status is PendingStatus.PENDING and e.retry_count < self.max_retries
        )

    def remove(self, entry: PendingResolutionEntry) -> None:
        self.store.delete_pending(entry.token)

    def all(self) -> List[PendingResolutionEntry]:
        return self.store.list_pending()

    # ------------------------------------------------------------------
    # Drain
    # ------------------------------------------------------------------
    def recover_interrupted(self) -> List[str]:
        """
        Return entries left in RESOLVING by a drain that never finished
        (process killed, task cancelled) to the retry pool.

        The interrupted attempt still counts toward the retry cap.
        """
        stuck = self.store.list_pending(lambda e: e.status is PendingStatus.RESOLVING)
        for entry in stuck:
            entry.status = self._status_after(RemoteErrorCode.NETWORK_ERROR, entry.retry_count)
            self.store.save_pending(entry)
            log.warning(f"[QUEUE] recovered interrupted {entry.token} → {entry.status.value}")
        return [e.token for e in stuck]

    def drain(self, resolve: ResolveCall, on_resolved: OnResolved) -> DrainReport:
        """
        Attempt every retry-eligible entry once, sequentially, oldest first.

        ``on_resolved`` persists the product (cache upsert + revocation) and
        runs before the entry is removed. A failure on one entry never stops
        the rest of the drain. If the drain itself is interrupted, the entry
        being attempted is put back before the interruption propagates.
        """
        self.recover_interrupted()
        report = DrainReport()
        eligible = self.retry_eligible()
        log.info(f"[DRAIN] {len(eligible)} eligible entries")

        for entry in eligible:
            entry.status = PendingStatus.RESOLVING
            entry.retry_count += 1
            entry.last_retry_at = self.clock()
            self.store.save_pending(entry)

            resolved = False
            try:
                data = resolve(entry.token)
                on_resolved(entry.token, data)
                resolved = True
            except RemoteResolveError as e:
                entry.status = self._status_after(e.code, entry.retry_count)
            except Exception:
                log.exception(f"[DRAIN] unexpected failure resolving {entry.token}")
                entry.status = self._status_after(RemoteErrorCode.NETWORK_ERROR, entry.retry_count)
            finally:
                if not resolved and entry.status is PendingStatus.RESOLVING:
                    # BaseException (cancel, interrupt) escaping mid-attempt
                    entry.status = self._status_after(RemoteErrorCode.NETWORK_ERROR, entry.retry_count)
                    self.store.save_pending(entry)
                    log.warning(f"[DRAIN] interrupted while resolving {entry.token}")

            if resolved:
                self.remove(entry)
                report.resolved.append(entry.token)
                log.info(f"[DRAIN] {entry.token} resolved")
                continue

            self.store.save_pending(entry)
            if entry.status is PendingStatus.FAILED:
                report.failed.append(entry.token)
            else:
                report.requeued.append(entry.token)
            log.info(f"[DRAIN] {entry.token} → {entry.status.value} (attempt {entry.retry_count})")

        return report

    def _status_after(self, code: RemoteErrorCode, retry_count: int) -> PendingStatus:
        """
        Status an entry takes after a failed attempt.

        Terminal vendor answers fail at once. Every other failure, network
        errors included, goes back to PENDING until the attempt cap is hit and
        then stays stored as FAILED. Network errors are not exempt: an
        uncapped entry would hold one of the QUEUE_CAPACITY slots forever.
        """
        if code.terminal:
            return PendingStatus.FAILED
        return PendingStatus.FAILED if retry_count >= self.max_retries else PendingStatus.PENDING
