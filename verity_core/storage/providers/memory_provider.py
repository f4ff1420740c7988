from dataclasses import replace
from typing import Optional, Dict, Any, List
from verity_core.storage.models import CachedProduct, PendingResolutionEntry, RoutineRecord
from verity_core.storage.provider import StorageProvider
from verity_core.utils import now_ts


class InMemoryStorage(StorageProvider):
    # Records are copied in and out so callers never alias stored state,
    # matching the SQLite provider.
    def __init__(self):
        self.products: Dict[str, CachedProduct] = {}
        self.pending: Dict[str, PendingResolutionEntry] = {}
        self.routines: Dict[str, RoutineRecord] = {}
        self.audit = []

    # products
    def get_product(self, token: str):
        rec = self.products.get(token)
        return replace(rec) if rec else None

    def save_product(self, product: CachedProduct):
        self.products[product.token] = replace(product)

    def list_products(self):
        return sorted((replace(p) for p in self.products.values()),
                      key=lambda p: p.cached_at, reverse=True)

    # pending queue
    def get_pending(self, token: str):
        rec = self.pending.get(token)
        return replace(rec) if rec else None

    def save_pending(self, entry: PendingResolutionEntry):
        self.pending[entry.token] = replace(entry)

    def delete_pending(self, token: str):
        self.pending.pop(token, None)

    def list_pending(self, predicate=None) -> List[PendingResolutionEntry]:
        entries = [replace(e) for e in self.pending.values()]
        if predicate is not None:
            entries = [e for e in entries if predicate(e)]
        return sorted(entries, key=lambda e: e.scanned_at)

    # dependent records
    def save_routine(self, rec: RoutineRecord):
        self.routines[rec.routine_id] = replace(rec)

    def list_routines(self, active_only: bool = False):
        recs = sorted((replace(r) for r in self.routines.values()),
                      key=lambda r: r.linked_at, reverse=True)
        return [r for r in recs if r.is_active] if active_only else recs

    def deactivate_routines(self, token: Optional[str] = None, product_id: Optional[str] = None) -> int:
        changed = 0
        for rec in self.routines.values():
            if not rec.is_active:
                continue
            if (token and rec.token == token) or (product_id and rec.product_id == product_id):
                rec.is_active = False
                changed += 1
        return changed

    # audit
    def log_event(self, event_type: str, payload: Dict[str, Any]):
        self.audit.append((now_ts(), event_type, dict(payload)))

    def list_events(self):
        return list(self.audit)

    def wipe_all(self):
        self.products.clear()
        self.pending.clear()
        self.routines.clear()
        self.audit.clear()
