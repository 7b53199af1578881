# src/stockroom/repositories/product_repository.py
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable

from stockroom.core.metrics import PRODUCT_MUTATIONS
from stockroom.domain.models import ChangeKind, Product, ProductChange, ProductFields
from stockroom.domain.ports import ProductNotFoundError
from stockroom.repositories.base import AbstractRecordStore

logger = logging.getLogger(__name__)

ChangeListener = Callable[[ProductChange], Awaitable[None]]


class ProductRepository:
    """
    Typed facade over the record store.

    Every successful mutation is announced to subscribers, so views can
    re-fetch instead of binding to the store directly.
    """

    def __init__(self, store: AbstractRecordStore) -> None:
        self._store = store
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Registers a change listener and returns a callable that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def create(self, fields: ProductFields) -> Product:
        product = Product.from_fields(fields)
        await self._store.put(product)
        logger.info("Created product %s", product.id)
        PRODUCT_MUTATIONS.labels(operation="create").inc()
        await self._notify(ChangeKind.CREATED, [product.id])
        return product

    async def get(self, product_id: str) -> Product:
        product = await self._store.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    async def update(self, product_id: str, fields: ProductFields) -> Product:
        existing = await self.get(product_id)
        updated = existing.with_fields(fields)
        await self._store.put(updated)
        logger.info("Updated product %s", product_id)
        PRODUCT_MUTATIONS.labels(operation="update").inc()
        await self._notify(ChangeKind.UPDATED, [product_id])
        return updated

    async def delete(self, product_id: str) -> None:
        if not await self._store.delete(product_id):
            raise ProductNotFoundError(product_id)
        logger.info("Deleted product %s", product_id)
        PRODUCT_MUTATIONS.labels(operation="delete").inc()
        await self._notify(ChangeKind.DELETED, [product_id])

    async def delete_many(self, product_ids: Iterable[str]) -> None:
        """Best effort: IDs that no longer exist are skipped without notice."""
        removed: list[str] = []
        for product_id in product_ids:
            if await self._store.delete(product_id):
                removed.append(product_id)
            else:
                logger.debug("Skipping missing product %s in batch delete", product_id)

        if not removed:
            return
        logger.info("Deleted %d products in batch", len(removed))
        PRODUCT_MUTATIONS.labels(operation="delete").inc(len(removed))
        await self._notify(ChangeKind.DELETED, removed)

    async def list_all(self) -> list[Product]:
        return await self._store.get_all()

    async def _notify(self, kind: ChangeKind, product_ids: list[str]) -> None:
        change = ProductChange(kind=kind, product_ids=tuple(product_ids))
        # Copy: a listener may unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                await listener(change)
            except Exception:
                # The mutation is already committed; a failing view must not undo that
                logger.error("Change listener failed for %s", change.kind, exc_info=True)
