# tests/conftest.py
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

import stockroom.api.dependencies as _deps
from stockroom.core.config import Settings, get_settings
from stockroom.main import app
from stockroom.repositories.memory_store import InMemoryRecordStore
from stockroom.repositories.product_repository import ProductRepository


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        seed_sample_products=0,
        currency_code="PHP",
    )


@pytest.fixture
def client(
    test_settings: Settings, monkeypatch: pytest.MonkeyPatch
) -> Generator[TestClient, None, None]:
    # The lifespan reads get_settings() directly, so the environment has to
    # point at the in-memory database as well as the DI override.
    monkeypatch.setenv("DATABASE_URL", test_settings.database_url)
    monkeypatch.setenv("SEED_SAMPLE_PRODUCTS", "0")
    get_settings.cache_clear()
    # Fresh repository singleton per test: every test starts with an empty store
    _deps._store = None
    _deps._repository = None
    app.dependency_overrides[get_settings] = lambda: test_settings
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
        _deps._store = None
        _deps._repository = None
        get_settings.cache_clear()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def repository(store: InMemoryRecordStore) -> ProductRepository:
    return ProductRepository(store)
