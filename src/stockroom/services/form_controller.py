# src/stockroom/services/form_controller.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from stockroom.core.metrics import PHOTO_LOADS
from stockroom.domain.models import Product, ProductDraft, safe_get
from stockroom.domain.ports import (
    FormClosedError,
    FormValidationError,
    PhotoSourcePort,
    ValidationReason,
)
from stockroom.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class ProductFormController:
    """
    Create/edit form for a single product.

    Holds a detached draft; the repository is only touched by save().
    Photo loads run as tasks owned by the form and are cancelled when
    the form is saved or cancelled, so a late result never lands in a
    discarded draft.
    """

    def __init__(self, repository: ProductRepository, product: Product | None = None) -> None:
        self._repo = repository
        self._product = product
        self._draft = ProductDraft.from_product(product)
        self._pending: set[asyncio.Task[None]] = set()
        self._closed = False
        # Set while save() awaits the repository; late photo loads are discarded
        self._committing = False

    @property
    def draft(self) -> ProductDraft:
        return self._draft

    @property
    def is_editing(self) -> bool:
        return self._product is not None

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def title(self) -> str:
        return "Update Product" if self.is_editing else "Add Product"

    @property
    def pending_photo_loads(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Photos
    # ------------------------------------------------------------------

    def attach_photo(self, blob: bytes) -> None:
        self._ensure_open()
        self._draft.photos.append(blob)

    def load_photos(self, sources: Iterable[PhotoSourcePort]) -> list[asyncio.Task[None]]:
        """Starts one load per source. Must be called from a running event loop."""
        self._ensure_open()
        tasks = []
        for source in sources:
            task = asyncio.create_task(self._load_photo(source))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return tasks

    async def wait_for_photos(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _load_photo(self, source: PhotoSourcePort) -> None:
        try:
            blob = await source.load_blob()
        except Exception:
            logger.warning("Dropping photo that failed to load", exc_info=True)
            PHOTO_LOADS.labels(status="failed").inc()
            return

        if self._closed or self._committing:
            PHOTO_LOADS.labels(status="discarded").inc()
            return
        self._draft.photos.append(blob)
        PHOTO_LOADS.labels(status="loaded").inc()

    def photo_at(self, index: int) -> bytes | None:
        return safe_get(self._draft.photos, index)

    def remove_photo(self, index: int) -> None:
        self._ensure_open()
        if safe_get(self._draft.photos, index) is None:
            return
        del self._draft.photos[index]

    # ------------------------------------------------------------------
    # Stock stepper
    # ------------------------------------------------------------------

    def increment_stock(self, delta: int = 1) -> None:
        self._ensure_open()
        self._draft.stock = max(self._draft.stock + delta, 0)

    def decrement_stock(self, delta: int = 1) -> None:
        self._ensure_open()
        self._draft.stock = max(self._draft.stock - delta, 0)

    # ------------------------------------------------------------------
    # Commit / discard
    # ------------------------------------------------------------------

    async def save(self) -> Product:
        """
        Validates and commits the draft. Photo loads still in flight are
        cancelled before the repository is called.

        Raises:
            FormValidationError: If the name is empty. Draft and store stay untouched.
            ProductNotFoundError: If the edited product was deleted meanwhile.
                The form stays open.
        """
        self._ensure_open()
        if self._draft.name == "":
            raise FormValidationError(ValidationReason.EMPTY_NAME)

        fields = self._draft.to_fields()
        self._committing = True
        self._cancel_pending()
        try:
            if self._product is not None:
                saved = await self._repo.update(self._product.id, fields)
            else:
                saved = await self._repo.create(fields)
        finally:
            self._committing = False

        self._close()
        return saved

    def cancel(self) -> None:
        self._ensure_open()
        self._close()

    def _close(self) -> None:
        self._closed = True
        self._cancel_pending()

    def _cancel_pending(self) -> None:
        for task in list(self._pending):
            task.cancel()

    def _ensure_open(self) -> None:
        if self._closed:
            raise FormClosedError("This form has already been saved or cancelled.")
