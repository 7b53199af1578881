# src/stockroom/domain/models.py
from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from enum import StrEnum
from typing import TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------


class ProductId(str):
    """Typed wrapper for product IDs."""


class ChangeKind(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class ProductChange(BaseModel):
    kind: ChangeKind
    product_ids: tuple[str, ...]

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Aggregate: Product
# The store persists the full record; price formatting is display-only.
# ---------------------------------------------------------------------------


class ProductFields(BaseModel):
    """The mutable part of a product, as written by create/update."""

    name: str = ""
    price: float = Field(default=0.0, ge=0)
    stock: int = Field(default=0, ge=0)
    description: str = ""
    # Append order matters for display and deletion-by-index
    photos: list[bytes] = Field(default_factory=list)

    model_config = {
        "frozen": True,
        "ser_json_bytes": "base64",
        "val_json_bytes": "base64",
    }


class Product(ProductFields):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_fields(cls, fields: ProductFields) -> Product:
        return cls(**fields.model_dump())

    def with_fields(self, fields: ProductFields) -> Product:
        """Returns a copy with all mutable fields replaced; id and created_at are kept."""
        return self.model_copy(update=fields.model_dump())

    @property
    def fields(self) -> ProductFields:
        return ProductFields(
            name=self.name,
            price=self.price,
            stock=self.stock,
            description=self.description,
            photos=list(self.photos),
        )


class ProductDraft(BaseModel):
    """
    Detached, editable copy of a product's fields.
    Nothing here reaches the store until the form is saved.
    """

    name: str = ""
    price: float = Field(default=0.0, ge=0)
    stock: int = Field(default=0, ge=0)
    description: str = ""
    photos: list[bytes] = Field(default_factory=list)

    model_config = {"validate_assignment": True}

    @classmethod
    def from_product(cls, product: Product | None) -> ProductDraft:
        if product is None:
            return cls()
        return cls(
            name=product.name,
            price=product.price,
            stock=product.stock,
            description=product.description,
            photos=list(product.photos),
        )

    def to_fields(self) -> ProductFields:
        return ProductFields(
            name=self.name,
            price=self.price,
            stock=self.stock,
            description=self.description,
            photos=list(self.photos),
        )


# ---------------------------------------------------------------------------
# API Request/Response Schemas
# ---------------------------------------------------------------------------


class ProductWrite(BaseModel):
    """Payload for create and full update. Photos are managed via their own endpoints."""

    name: str = ""
    price: float = Field(default=0.0, ge=0)
    stock: int = Field(default=0, ge=0)
    description: str = ""


class ProductRead(BaseModel):
    id: str
    created_at: datetime
    name: str
    price: float
    price_display: str
    stock: int
    description: str
    photo_count: int

    @classmethod
    def from_product(cls, product: Product, currency_code: str) -> ProductRead:
        return cls(
            id=product.id,
            created_at=product.created_at,
            name=product.name,
            price=product.price,
            price_display=format_price(product.price, currency_code),
            stock=product.stock,
            description=product.description,
            photo_count=len(product.photos),
        )


class BatchDeleteRequest(BaseModel):
    ids: set[str] = Field(default_factory=set)


class PhotoFetchRequest(BaseModel):
    urls: list[str] = Field(min_length=1, max_length=20)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_price(price: float, currency_code: str = "PHP") -> str:
    return f"{currency_code} {price:,.2f}"


def safe_get(items: Sequence[T], index: int) -> T | None:
    """Returns items[index], or None for any index outside [0, len)."""
    if 0 <= index < len(items):
        return items[index]
    return None
