# src/stockroom/api/dependencies.py
from functools import lru_cache

import httpx
from fastapi import Depends

from stockroom.core.config import Settings, get_settings
from stockroom.repositories.product_repository import ProductRepository
from stockroom.repositories.sqlite_store import SQLiteRecordStore


# Shared HTTP Client (Connection Pooling)
@lru_cache
def get_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={"User-Agent": "Stockroom/1.0"},
        follow_redirects=False,
    )


# Singletons (initialised on first access)
_store: SQLiteRecordStore | None = None
_repository: ProductRepository | None = None


async def get_product_repository(
    settings: Settings = Depends(get_settings),
) -> ProductRepository:
    global _store, _repository
    if _repository is None:
        store = SQLiteRecordStore(database_url=settings.database_url)
        await store.initialize()
        _store = store
        _repository = ProductRepository(store)
    return _repository


async def close_record_store() -> None:
    global _store, _repository
    if _store is not None:
        await _store.dispose()
    _store = None
    _repository = None
