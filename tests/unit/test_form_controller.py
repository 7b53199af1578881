import asyncio
import random

import pytest

from stockroom.domain.models import Product, ProductChange, ProductFields
from stockroom.domain.ports import (
    FormClosedError,
    FormValidationError,
    PhotoLoadError,
    PhotoSourcePort,
    ProductNotFoundError,
    ValidationReason,
)
from stockroom.repositories.memory_store import InMemoryRecordStore
from stockroom.repositories.product_repository import ProductRepository
from stockroom.services.form_controller import ProductFormController


class _StubSource(PhotoSourcePort):
    def __init__(
        self,
        data: bytes = b"img",
        error: Exception | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self._data = data
        self._error = error
        self._gate = gate

    async def load_blob(self) -> bytes:
        if self._gate is not None:
            await self._gate.wait()
        if self._error is not None:
            raise self._error
        return self._data


async def _existing(repository: ProductRepository, **overrides: object) -> Product:
    values: dict[str, object] = {
        "name": "Widget",
        "price": 10.0,
        "stock": 4,
        "description": "Original",
        "photos": [b"p0", b"p1", b"p2"],
    }
    values.update(overrides)
    return await repository.create(ProductFields(**values))  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Save / cancel
# ---------------------------------------------------------------------------


@pytest.mark.asyncio  # type: ignore[misc]
async def test_save_creates_exactly_one_matching_record(repository: ProductRepository) -> None:
    form = ProductFormController(repository)
    form.draft.name = "Bolt"
    form.draft.price = 0.25
    form.draft.stock = 100
    form.draft.description = "M6"
    form.attach_photo(b"photo")

    saved = await form.save()

    records = await repository.list_all()
    assert records == [saved]
    assert saved.fields == form.draft.to_fields()
    assert form.is_closed


@pytest.mark.asyncio  # type: ignore[misc]
async def test_save_updates_existing_product(repository: ProductRepository) -> None:
    product = await _existing(repository)
    form = ProductFormController(repository, product)
    assert form.is_editing
    assert form.draft.name == "Widget"

    form.draft.name = "Widget XL"
    saved = await form.save()

    assert saved.id == product.id
    assert saved.created_at == product.created_at
    assert await repository.list_all() == [saved]
    assert saved.name == "Widget XL"


@pytest.mark.asyncio  # type: ignore[misc]
async def test_empty_name_is_rejected_without_touching_store(
    repository: ProductRepository,
) -> None:
    await _existing(repository)
    form = ProductFormController(repository)
    form.draft.price = 3.0

    with pytest.raises(FormValidationError) as exc_info:
        await form.save()

    assert exc_info.value.reason == ValidationReason.EMPTY_NAME
    assert len(await repository.list_all()) == 1
    # Draft preserved for correction, form still usable
    assert form.draft.price == 3.0
    assert not form.is_closed
    form.draft.name = "Fixed"
    await form.save()
    assert len(await repository.list_all()) == 2


@pytest.mark.asyncio  # type: ignore[misc]
async def test_editing_product_to_empty_name_is_rejected(repository: ProductRepository) -> None:
    product = await _existing(repository)
    form = ProductFormController(repository, product)
    form.draft.name = ""

    with pytest.raises(FormValidationError):
        await form.save()
    assert (await repository.get(product.id)).name == "Widget"


@pytest.mark.asyncio  # type: ignore[misc]
async def test_update_of_deleted_product_keeps_form_open(repository: ProductRepository) -> None:
    product = await _existing(repository)
    form = ProductFormController(repository, product)
    await repository.delete(product.id)

    with pytest.raises(ProductNotFoundError):
        await form.save()
    assert not form.is_closed
    assert await repository.list_all() == []


@pytest.mark.asyncio  # type: ignore[misc]
async def test_cancel_discards_draft(repository: ProductRepository) -> None:
    product = await _existing(repository)
    form = ProductFormController(repository, product)
    form.draft.name = "Discarded"
    form.remove_photo(0)

    form.cancel()

    assert await repository.list_all() == [product]
    with pytest.raises(FormClosedError):
        await form.save()
    with pytest.raises(FormClosedError):
        form.attach_photo(b"late")


def test_title_reflects_mode(repository: ProductRepository) -> None:
    assert ProductFormController(repository).title == "Add Product"
    assert ProductFormController(repository, Product(name="x")).title == "Update Product"


# ---------------------------------------------------------------------------
# Stock stepper
# ---------------------------------------------------------------------------


def test_stock_steps_clamp_at_zero(repository: ProductRepository) -> None:
    form = ProductFormController(repository)
    form.decrement_stock()
    assert form.draft.stock == 0

    form.increment_stock(10)
    form.decrement_stock(3)
    assert form.draft.stock == 7

    form.decrement_stock(10)
    assert form.draft.stock == 0


def test_stock_never_negative_for_any_sequence(repository: ProductRepository) -> None:
    rng = random.Random(42)
    form = ProductFormController(repository)
    for _ in range(500):
        delta = rng.choice([1, 10])
        if rng.random() < 0.6:
            form.decrement_stock(delta)
        else:
            form.increment_stock(delta)
        assert form.draft.stock >= 0


# ---------------------------------------------------------------------------
# Photos
# ---------------------------------------------------------------------------


@pytest.mark.asyncio  # type: ignore[misc]
async def test_remove_photo_shifts_following_photos(repository: ProductRepository) -> None:
    form = ProductFormController(repository, await _existing(repository))
    form.remove_photo(1)
    assert form.draft.photos == [b"p0", b"p2"]
    assert form.photo_at(1) == b"p2"


@pytest.mark.asyncio  # type: ignore[misc]
@pytest.mark.parametrize("index", [-1, -3, 3, 50])  # type: ignore[misc]
async def test_remove_photo_out_of_range_is_noop(
    repository: ProductRepository, index: int
) -> None:
    form = ProductFormController(repository, await _existing(repository))
    form.remove_photo(index)
    assert form.draft.photos == [b"p0", b"p1", b"p2"]
    assert form.photo_at(index) is None


def test_attach_photo_preserves_order(repository: ProductRepository) -> None:
    form = ProductFormController(repository)
    for blob in [b"a", b"b", b"c"]:
        form.attach_photo(blob)
    assert form.draft.photos == [b"a", b"b", b"c"]


@pytest.mark.asyncio  # type: ignore[misc]
async def test_load_photos_drops_failures(
    repository: ProductRepository, caplog: pytest.LogCaptureFixture
) -> None:
    form = ProductFormController(repository)
    form.load_photos(
        [
            _StubSource(b"first"),
            _StubSource(error=PhotoLoadError("picker", "unreadable")),
            _StubSource(b"third"),
        ]
    )
    await form.wait_for_photos()

    assert sorted(form.draft.photos) == [b"first", b"third"]
    assert form.pending_photo_loads == 0
    assert "Dropping photo that failed to load" in caplog.text


@pytest.mark.asyncio  # type: ignore[misc]
async def test_cancel_stops_pending_loads(repository: ProductRepository) -> None:
    gate = asyncio.Event()
    form = ProductFormController(repository)
    tasks = form.load_photos([_StubSource(b"slow", gate=gate)])
    await asyncio.sleep(0)

    form.cancel()
    gate.set()
    await asyncio.gather(*tasks, return_exceptions=True)

    assert tasks[0].cancelled()
    assert form.draft.photos == []


@pytest.mark.asyncio  # type: ignore[misc]
async def test_save_cancels_pending_loads(repository: ProductRepository) -> None:
    gate = asyncio.Event()
    form = ProductFormController(repository)
    form.draft.name = "Quick"
    tasks = form.load_photos([_StubSource(b"slow", gate=gate)])

    saved = await form.save()
    gate.set()
    await asyncio.gather(*tasks, return_exceptions=True)

    assert saved.photos == []
    assert (await repository.get(saved.id)).photos == []
    assert tasks[0].cancelled()


class _YieldingStore(InMemoryRecordStore):
    """Opens the gate inside put() and yields, so loads can finish mid-save."""

    def __init__(self, gate: asyncio.Event) -> None:
        super().__init__()
        self._gate = gate

    async def put(self, record: Product) -> Product:
        self._gate.set()
        for _ in range(5):
            await asyncio.sleep(0)
        return await super().put(record)


@pytest.mark.asyncio  # type: ignore[misc]
async def test_load_finishing_during_save_is_not_appended() -> None:
    gate = asyncio.Event()
    repository = ProductRepository(_YieldingStore(gate))
    form = ProductFormController(repository)
    form.draft.name = "Racy"
    tasks = form.load_photos([_StubSource(b"late", gate=gate)])
    await asyncio.sleep(0)

    saved = await form.save()
    await asyncio.gather(*tasks, return_exceptions=True)

    assert saved.photos == []
    assert form.draft.photos == []
    assert (await repository.get(saved.id)).photos == []
    assert tasks[0].cancelled()


@pytest.mark.asyncio  # type: ignore[misc]
async def test_failed_save_accepts_new_photo_loads(repository: ProductRepository) -> None:
    product = await _existing(repository)
    form = ProductFormController(repository, product)
    await repository.delete(product.id)

    with pytest.raises(ProductNotFoundError):
        await form.save()

    form.load_photos([_StubSource(b"retry")])
    await form.wait_for_photos()
    assert form.draft.photos[-1] == b"retry"


@pytest.mark.asyncio  # type: ignore[misc]
async def test_failing_change_listener_does_not_fail_save(
    repository: ProductRepository, caplog: pytest.LogCaptureFixture
) -> None:
    async def broken_view(change: ProductChange) -> None:
        raise RuntimeError("view exploded")

    repository.subscribe(broken_view)
    form = ProductFormController(repository)
    form.draft.name = "Sturdy"

    saved = await form.save()

    assert form.is_closed
    assert await repository.list_all() == [saved]
    assert "Change listener failed" in caplog.text
