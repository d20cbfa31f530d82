"""
Product repository containing all data-access operations for the products table.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from importer.core.constants import EntityType
from importer.db.models.product import ProductRecord
from importer.entities import Product
from importer.repositories.base import SessionStore


async def create_product(db: AsyncSession, product: Product) -> ProductRecord:
    """Insert a product row from an imported entity."""
    record = ProductRecord(
        codigo=product.codigo.upper(),
        nombre=product.nombre,
        descripcion=product.descripcion,
        precio=product.precio,
        stock=product.stock,
        marca=product.marca,
        modelo=product.modelo,
        activo=product.activo,
        fecha_creacion=product.fecha_creacion,
        fecha_actualizacion=product.fecha_actualizacion,
    )
    db.add(record)
    await db.flush()
    return record


async def get_product_by_code(db: AsyncSession, codigo: str) -> ProductRecord | None:
    stmt = select(ProductRecord).where(ProductRecord.codigo == codigo.upper())
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def product_exists(db: AsyncSession, codigo: str) -> bool:
    stmt = select(ProductRecord.id).where(ProductRecord.codigo == codigo.upper()).limit(1)
    result = await db.execute(stmt)
    return result.first() is not None


async def list_products(
    db: AsyncSession,
    *,
    activo: bool | None = None,
    offset: int = 0,
    limit: int = 50,
) -> list[ProductRecord]:
    stmt = select(ProductRecord).order_by(ProductRecord.id)
    if activo is not None:
        stmt = stmt.where(ProductRecord.activo == activo)
    stmt = stmt.offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


class ProductStore(SessionStore):
    entity_type = EntityType.PRODUCT.value

    async def exists_by_key(self, key: str) -> bool:
        async with self.transaction(f"Product lookup '{key}'") as db:
            return await product_exists(db, key)

    async def save(self, entity: Product) -> None:
        async with self.transaction(f"Product insert '{entity.codigo}'") as db:
            await create_product(db, entity)
