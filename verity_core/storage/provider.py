# verity_core/storage/provider.py
from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional, Tuple

from verity_core.storage.models import CachedProduct, PendingResolutionEntry, RoutineRecord

PendingPredicate = Callable[[PendingResolutionEntry], bool]


class StorageProvider:
    """
    Generic keyed record store backing the product cache, the pending queue
    and the dependent routine records.

    Every write replaces one whole record keyed by token (or routine_id);
    providers never apply partial updates.
    """

    # products
    def get_product(self, token: str) -> Optional[CachedProduct]: ...
    def save_product(self, product: CachedProduct) -> None: ...
    def list_products(self) -> List[CachedProduct]: ...

    # pending queue
    def get_pending(self, token: str) -> Optional[PendingResolutionEntry]: ...
    def save_pending(self, entry: PendingResolutionEntry) -> None: ...
    def delete_pending(self, token: str) -> None: ...
    def list_pending(self, predicate: Optional[PendingPredicate] = None) -> List[PendingResolutionEntry]: ...

    def count_pending(self, predicate: Optional[PendingPredicate] = None) -> int:
        return len(self.list_pending(predicate))

    # dependent records
    def save_routine(self, rec: RoutineRecord) -> None: ...
    def list_routines(self, active_only: bool = False) -> List[RoutineRecord]: ...
    def deactivate_routines(self, token: Optional[str] = None, product_id: Optional[str] = None) -> int: ...

    # audit
    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None: ...
    def list_events(self) -> List[Tuple[str, str, Dict[str, Any]]]: ...

    # lifecycle
    def wipe_all(self) -> None: ...

    def flush(self) -> None:
        return

    def close(self) -> None:
        return
