"""
verity_core.revocation
----------------------
Deactivates dependent records (routines) as soon as a product resolves as
revoked. Runs synchronously inside the resolution that observed the status,
so no dependent record stays active once the cache says revoked.

Revocation is one-directional: a later "active" status updates the cached
product but never reactivates dependents.
"""

from __future__ import annotations
from typing import Optional, Protocol

from .logger import get_logger
from .storage.models import CachedProduct

log = get_logger("Verity.Revocation")


class DependentRecords(Protocol):
    def deactivate_routines(self, token: Optional[str] = None, product_id: Optional[str] = None) -> int: ...


class RevocationPropagator:
    def __init__(self, dependents: DependentRecords):
        self.dependents = dependents

    def on_status_resolved(self, product: CachedProduct) -> int:
        if not product.is_revoked:
            return 0
        count = self.dependents.deactivate_routines(token=product.token, product_id=product.product_id)
        log.warning(f"[REVOKED] {product.token} product={product.product_id} deactivated={count}")
        return count
