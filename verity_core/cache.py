"""
verity_core.cache
-----------------
Keyed cache of vendor-resolved products with staleness tracking.

One record per token. Records are updated in place on re-resolution and
never deleted here; a full wipe belongs to the store (wipe_all).
"""

from __future__ import annotations
from datetime import datetime
from typing import Callable, List, Optional

from .logger import get_logger
from .storage.models import CachedProduct, ProductStatus
from .storage.provider import StorageProvider
from .transport.transport_base import ProductData
from .utils import utc_now

log = get_logger("Verity.Cache")


class ProductCache:
    def __init__(self, store: StorageProvider, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def find(self, token: str) -> Optional[CachedProduct]:
        return self.store.get_product(token)

    def is_stale(self, product: CachedProduct) -> bool:
        return product.is_stale(self.clock())

    def find_fresh(self, token: str) -> Optional[CachedProduct]:
        product = self.find(token)
        if product is None:
            return None
        if self.is_stale(product):
            log.debug(f"[CACHE STALE] {token} expired {product.expires_at.isoformat()}")
            return None
        return product

    def upsert(self, token: str, data: ProductData) -> CachedProduct:
        now = self.clock()
        status = ProductStatus.parse(data.status)
        product = self.find(token)

        if product is not None:
            if product.is_revoked and status is ProductStatus.ACTIVE:
                log.warning(f"[CACHE] {token} reported active again after revocation")
            product.name = data.name
            product.category = data.category
            product.description = data.description
            product.batch_id = data.batch_id
            product.status = status
            product.cached_at = now
            product.ttl = data.cache_ttl
        else:
            product = CachedProduct(
                token=token,
                product_id=data.product_id,
                name=data.name,
                category=data.category,
                description=data.description,
                batch_id=data.batch_id,
                verified_at=data.verified_at,
                cached_at=now,
                ttl=data.cache_ttl,
                status=status,
            )

        self.store.save_product(product)
        log.info(f"[CACHE UPSERT] {token} product={product.product_id} status={status.value}")
        return product

    def all(self) -> List[CachedProduct]:
        return self.store.list_products()
