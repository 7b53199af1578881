from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum

from stockroom.domain.models import Product, ProductChange, ProductId, safe_get
from stockroom.domain.ports import InvalidModeError, ProductNotFoundError
from stockroom.repositories.product_repository import ProductRepository
from stockroom.services.search import filter_products

logger = logging.getLogger(__name__)


class ListMode(StrEnum):
    BROWSING = "browsing"
    SELECTING = "selecting"


class ListController:
    """
    State behind the product list: search query, edit mode and selection.

    Selection holds product IDs only; records are resolved by the repository.
    The cached list is re-fetched whenever the repository reports a change.
    """

    def __init__(self, repository: ProductRepository) -> None:
        self._repo = repository
        self._products: list[Product] = []
        self._visible: list[Product] = []
        self._query = ""
        self._selection: set[ProductId] = set()
        self._edit_mode_active = False
        self._unsubscribe: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    @property
    def products(self) -> list[Product]:
        return list(self._products)

    @property
    def visible(self) -> list[Product]:
        return list(self._visible)

    @property
    def query(self) -> str:
        return self._query

    @property
    def selection(self) -> frozenset[ProductId]:
        return frozenset(self._selection)

    @property
    def edit_mode_active(self) -> bool:
        return self._edit_mode_active

    @property
    def mode(self) -> ListMode:
        return ListMode.SELECTING if self._edit_mode_active else ListMode.BROWSING

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._repo.subscribe(self._on_change)
        await self.refresh()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def refresh(self) -> None:
        self._products = await self._repo.list_all()
        known = {p.id for p in self._products}
        self._selection &= {ProductId(pid) for pid in known}
        self._recompute()

    async def _on_change(self, change: ProductChange) -> None:
        logger.debug("Refreshing list after %s of %s", change.kind, change.product_ids)
        await self.refresh()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def set_query(self, query: str) -> None:
        self._query = query
        self._recompute()

    def toggle_edit_mode(self) -> None:
        self._edit_mode_active = not self._edit_mode_active
        if not self._edit_mode_active:
            self._selection.clear()

    async def swipe_delete(self, index: int) -> None:
        if self._edit_mode_active:
            raise InvalidModeError("Swipe to delete is not available while selecting.")
        product = safe_get(self._visible, index)
        if product is None:
            return
        try:
            await self._repo.delete(product.id)
        except ProductNotFoundError:
            # Already gone; the next refresh drops it from the list
            logger.debug("Product %s was already deleted", product.id)
            await self.refresh()

    def select(self, product_id: str) -> None:
        if not self._edit_mode_active:
            return
        if any(p.id == product_id for p in self._products):
            self._selection.add(ProductId(product_id))

    def deselect(self, product_id: str) -> None:
        if not self._edit_mode_active:
            return
        self._selection.discard(ProductId(product_id))

    async def batch_delete(self) -> None:
        if not self._selection:
            return
        await self._repo.delete_many(set(self._selection))
        self._selection.clear()
        self._edit_mode_active = False

    def _recompute(self) -> None:
        self._visible = filter_products(self._products, self._query)
