from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from stockroom.adapters.photo_sources import HttpPhotoSource
from stockroom.api.dependencies import get_http_client, get_product_repository
from stockroom.core.config import Settings, get_settings
from stockroom.domain.models import (
    BatchDeleteRequest,
    PhotoFetchRequest,
    ProductRead,
    ProductWrite,
    safe_get,
)
from stockroom.repositories.product_repository import ProductRepository
from stockroom.services.form_controller import ProductFormController
from stockroom.services.search import filter_products

router = APIRouter(prefix="/products", tags=["Products"])

RepositoryDep = Annotated[ProductRepository, Depends(get_product_repository)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
HttpClientDep = Annotated[httpx.AsyncClient, Depends(get_http_client)]


def _apply(form: ProductFormController, payload: ProductWrite) -> None:
    form.draft.name = payload.name
    form.draft.price = payload.price
    form.draft.stock = payload.stock
    form.draft.description = payload.description


@router.get("", response_model=list[ProductRead])
async def list_products(
    repository: RepositoryDep,
    settings: SettingsDep,
    q: str = "",
) -> list[ProductRead]:
    """
    Lists all products, optionally filtered by a case-insensitive name search.
    """
    products = filter_products(await repository.list_all(), q)
    return [ProductRead.from_product(p, settings.currency_code) for p in products]


@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductWrite,
    repository: RepositoryDep,
    settings: SettingsDep,
) -> ProductRead:
    form = ProductFormController(repository)
    _apply(form, payload)
    product = await form.save()
    return ProductRead.from_product(product, settings.currency_code)


@router.post("/batch-delete", status_code=status.HTTP_204_NO_CONTENT)
async def batch_delete_products(payload: BatchDeleteRequest, repository: RepositoryDep) -> None:
    """Best effort: unknown IDs are ignored."""
    await repository.delete_many(payload.ids)


@router.get("/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: str, repository: RepositoryDep, settings: SettingsDep
) -> ProductRead:
    product = await repository.get(product_id)
    return ProductRead.from_product(product, settings.currency_code)


@router.put("/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: str,
    payload: ProductWrite,
    repository: RepositoryDep,
    settings: SettingsDep,
) -> ProductRead:
    form = ProductFormController(repository, await repository.get(product_id))
    _apply(form, payload)
    product = await form.save()
    return ProductRead.from_product(product, settings.currency_code)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: str, repository: RepositoryDep) -> None:
    await repository.delete(product_id)


# ---------------------------------------------------------------------------
# Photos
# ---------------------------------------------------------------------------


@router.get("/{product_id}/photos/{index}")
async def get_photo(product_id: str, index: int, repository: RepositoryDep) -> Response:
    product = await repository.get(product_id)
    blob = safe_get(product.photos, index)
    if blob is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found.")
    return Response(content=blob, media_type="application/octet-stream")


@router.post(
    "/{product_id}/photos", response_model=ProductRead, status_code=status.HTTP_201_CREATED
)
async def upload_photo(
    product_id: str,
    request: Request,
    repository: RepositoryDep,
    settings: SettingsDep,
) -> ProductRead:
    """Appends the raw request body as a new photo."""
    limit = settings.max_photo_bytes
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise HTTPException(status_code=413, detail=f"Photo exceeds {limit} bytes.")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise HTTPException(status_code=413, detail=f"Photo exceeds {limit} bytes.")
    if not body:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty photo body.")

    form = ProductFormController(repository, await repository.get(product_id))
    form.attach_photo(bytes(body))
    product = await form.save()
    return ProductRead.from_product(product, settings.currency_code)


@router.post("/{product_id}/photos/fetch", response_model=ProductRead)
async def fetch_photos(
    product_id: str,
    payload: PhotoFetchRequest,
    repository: RepositoryDep,
    settings: SettingsDep,
    client: HttpClientDep,
) -> ProductRead:
    """
    Downloads photos from the given URLs and appends those that load.
    Failed, oversized and disallowed downloads are skipped.
    """
    form = ProductFormController(repository, await repository.get(product_id))
    allowed_hosts = frozenset(settings.photo_fetch_allowed_hosts)
    form.load_photos(
        HttpPhotoSource(
            client,
            url,
            timeout=settings.photo_fetch_timeout_seconds,
            max_bytes=settings.max_photo_bytes,
            allowed_hosts=allowed_hosts,
        )
        for url in payload.urls
    )
    await form.wait_for_photos()
    product = await form.save()
    return ProductRead.from_product(product, settings.currency_code)


@router.delete("/{product_id}/photos/{index}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_photo(product_id: str, index: int, repository: RepositoryDep) -> None:
    form = ProductFormController(repository, await repository.get(product_id))
    if form.photo_at(index) is None:
        form.cancel()
        return
    form.remove_photo(index)
    await form.save()
