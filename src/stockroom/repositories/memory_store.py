# src/stockroom/repositories/memory_store.py
from __future__ import annotations

from stockroom.domain.models import Product
from stockroom.repositories.base import AbstractRecordStore


class InMemoryRecordStore(AbstractRecordStore):
    """
    Non-durable store for tests and previews.
    Interface can be swapped for the SQLite implementation.
    """

    def __init__(self) -> None:
        # dict keeps insertion order; overwriting a key keeps its position
        self._records: dict[str, Product] = {}

    async def put(self, record: Product) -> Product:
        self._records[record.id] = record
        return record

    async def get(self, record_id: str) -> Product | None:
        return self._records.get(record_id)

    async def delete(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    async def get_all(self) -> list[Product]:
        return list(self._records.values())
