"""
Client repository containing all data-access operations for the clients table.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from importer.core.constants import EntityType
from importer.db.models.client import ClientRecord
from importer.entities import Client
from importer.repositories.base import SessionStore
from importer.validation.business_rules import normalize_rut


async def create_client(db: AsyncSession, client: Client) -> ClientRecord:
    """Insert a client row from an imported entity."""
    record = ClientRecord(
        rut=normalize_rut(client.rut),
        nombre=client.nombre,
        apellido=client.apellido,
        email=client.email.lower(),
        telefono=client.telefono,
        direccion=client.direccion,
        categoria=client.categoria,
        fecha_registro=client.fecha_registro,
    )
    db.add(record)
    await db.flush()
    return record


async def get_client_by_rut(db: AsyncSession, rut: str) -> ClientRecord | None:
    stmt = select(ClientRecord).where(ClientRecord.rut == normalize_rut(rut))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def client_exists(db: AsyncSession, rut: str) -> bool:
    stmt = select(ClientRecord.id).where(ClientRecord.rut == normalize_rut(rut)).limit(1)
    result = await db.execute(stmt)
    return result.first() is not None


async def list_clients(db: AsyncSession, *, offset: int = 0, limit: int = 50) -> list[ClientRecord]:
    stmt = select(ClientRecord).order_by(ClientRecord.id).offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


class ClientStore(SessionStore):
    entity_type = EntityType.CLIENT.value

    async def exists_by_key(self, key: str) -> bool:
        async with self.transaction(f"Client lookup '{key}'") as db:
            return await client_exists(db, key)

    async def save(self, entity: Client) -> None:
        async with self.transaction(f"Client insert '{entity.rut}'") as db:
            await create_client(db, entity)
