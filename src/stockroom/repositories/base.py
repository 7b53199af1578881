from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stockroom.domain.models import Product


class AbstractRecordStore(ABC):
    @abstractmethod
    async def put(self, record: Product) -> Product:
        """Inserts a new record or overwrites the one with the same ID."""
        ...

    @abstractmethod
    async def get(self, record_id: str) -> Product | None:
        """Finds a record by ID."""
        ...

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Deletes a record by ID. Returns True if deleted."""
        ...

    @abstractmethod
    async def get_all(self) -> list[Product]:
        """Returns all records in insertion order."""
        ...
