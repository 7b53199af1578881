# src/stockroom/services/search.py
from __future__ import annotations

from collections.abc import Sequence

from stockroom.domain.models import Product


def filter_products(products: Sequence[Product], query: str) -> list[Product]:
    """
    Case-insensitive substring match on the product name.
    An empty query returns every product; relative order is always preserved.
    """
    if not query:
        return list(products)
    needle = query.casefold()
    return [p for p in products if needle in p.name.casefold()]
