from __future__ import annotations

import logging
import random

from stockroom.domain.models import ProductFields
from stockroom.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)

_NAMES = ["Product 1", "Product 2", "Product 3", "Product 4", "Product 5"]
_DESCRIPTIONS = ["Description 1", "Description 2", "Description 3", "Description 4", "Description 5"]


def random_product_fields(rng: random.Random | None = None) -> ProductFields:
    """Builds plausible demo fields; name and description are picked as a pair."""
    rng = rng or random.Random()
    index = rng.randrange(len(_NAMES))
    return ProductFields(
        name=_NAMES[index],
        price=round(rng.uniform(1.0, 100.0), 2),
        stock=rng.randint(0, 100),
        description=_DESCRIPTIONS[index],
    )


async def seed_sample_products(
    repository: ProductRepository, count: int, rng: random.Random | None = None
) -> int:
    """Fills an empty store with random products. Returns how many were created."""
    if count <= 0 or await repository.list_all():
        return 0
    rng = rng or random.Random()
    for _ in range(count):
        await repository.create(random_product_fields(rng))
    logger.info("Seeded %d sample products", count)
    return count
