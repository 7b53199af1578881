from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import (
    CursorResult,
    Float,
    Integer,
    LargeBinary,
    String,
    Text,
    delete,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from stockroom.domain.models import Product
from stockroom.domain.ports import StoreIOError
from stockroom.repositories.base import AbstractRecordStore

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class ProductORM(Base):
    __tablename__ = "products"

    # Surrogate key only provides insertion order; updates keep the row in place
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    # ISO-8601 with offset; SQLite drops tzinfo from native DateTime columns
    created_at: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")


class ProductPhotoORM(Base):
    __tablename__ = "product_photos"

    product_id: Mapped[str] = mapped_column(String, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Record store operation '%s' failed", operation, exc_info=True)
        raise StoreIOError(operation, str(e)) from e


class SQLiteRecordStore(AbstractRecordStore):
    def __init__(self, database_url: str) -> None:
        self.engine = create_async_engine(database_url)
        self.async_session_maker = async_sessionmaker(self.engine, expire_on_commit=False)

    async def initialize(self) -> None:
        with _store_errors("initialize"):
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def put(self, record: Product) -> Product:
        with _store_errors("put"):
            async with self.async_session_maker() as session, session.begin():
                result = await session.execute(
                    select(ProductORM).where(ProductORM.id == record.id)
                )
                orm_product = result.scalar_one_or_none()
                if orm_product is None:
                    orm_product = ProductORM(
                        id=record.id, created_at=record.created_at.isoformat()
                    )
                    session.add(orm_product)
                orm_product.name = record.name
                orm_product.price = record.price
                orm_product.stock = record.stock
                orm_product.description = record.description

                await session.execute(
                    delete(ProductPhotoORM).where(ProductPhotoORM.product_id == record.id)
                )
                session.add_all(
                    ProductPhotoORM(product_id=record.id, position=i, data=blob)
                    for i, blob in enumerate(record.photos)
                )
        return record

    async def get(self, record_id: str) -> Product | None:
        with _store_errors("get"):
            async with self.async_session_maker() as session:
                result = await session.execute(
                    select(ProductORM).where(ProductORM.id == record_id)
                )
                orm_product = result.scalar_one_or_none()
                if orm_product is None:
                    return None
                photos = await self._photos_by_product(session, [record_id])
                return self._to_domain(orm_product, photos.get(record_id, []))

    async def delete(self, record_id: str) -> bool:
        with _store_errors("delete"):
            async with self.async_session_maker() as session, session.begin():
                await session.execute(
                    delete(ProductPhotoORM).where(ProductPhotoORM.product_id == record_id)
                )
                result = await session.execute(
                    delete(ProductORM).where(ProductORM.id == record_id)
                )
                if isinstance(result, CursorResult):
                    return bool(result.rowcount > 0)
                return False

    async def get_all(self) -> list[Product]:
        with _store_errors("get_all"):
            async with self.async_session_maker() as session:
                result = await session.execute(select(ProductORM).order_by(ProductORM.seq))
                rows = list(result.scalars())
                photos = await self._photos_by_product(session, [row.id for row in rows])
                return [self._to_domain(row, photos.get(row.id, [])) for row in rows]

    @staticmethod
    async def _photos_by_product(
        session: AsyncSession, product_ids: list[str]
    ) -> dict[str, list[bytes]]:
        if not product_ids:
            return {}
        result = await session.execute(
            select(ProductPhotoORM)
            .where(ProductPhotoORM.product_id.in_(product_ids))
            .order_by(ProductPhotoORM.product_id, ProductPhotoORM.position)
        )
        grouped: dict[str, list[bytes]] = {}
        for photo in result.scalars():
            grouped.setdefault(photo.product_id, []).append(photo.data)
        return grouped

    @staticmethod
    def _to_domain(row: ProductORM, photos: list[bytes]) -> Product:
        return Product(
            id=row.id,
            created_at=datetime.fromisoformat(row.created_at),
            name=row.name,
            price=row.price,
            stock=row.stock,
            description=row.description,
            photos=photos,
        )
