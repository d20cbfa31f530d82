"""
User repository containing all data-access operations for the users table.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from importer.core.constants import ROLE_SEPARATOR, EntityType
from importer.core.security import hash_password
from importer.db.models.user import UserRecord
from importer.entities import User
from importer.repositories.base import SessionStore


async def create_user(db: AsyncSession, user: User, hashed_password: str) -> UserRecord:
    """Create a new user; the caller supplies the bcrypt hash."""
    record = UserRecord(
        username=user.username.strip(),
        hashed_password=hashed_password,
        nombre=user.nombre,
        apellido=user.apellido,
        email=user.email.lower().strip(),
        roles=ROLE_SEPARATOR.join(role.upper() for role in user.roles),
        activo=user.activo,
        fecha_creacion=user.fecha_creacion,
    )
    db.add(record)
    await db.flush()
    return record


async def get_user_by_username(db: AsyncSession, username: str) -> UserRecord | None:
    stmt = select(UserRecord).where(UserRecord.username == username.strip())
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def user_exists(db: AsyncSession, username: str) -> bool:
    stmt = select(UserRecord.id).where(UserRecord.username == username.strip()).limit(1)
    result = await db.execute(stmt)
    return result.first() is not None


class UserStore(SessionStore):
    entity_type = EntityType.USER.value

    async def exists_by_key(self, key: str) -> bool:
        async with self.transaction(f"User lookup '{key}'") as db:
            return await user_exists(db, key)

    async def save(self, entity: User) -> None:
        # bcrypt is CPU-bound; keep it off the event loop
        hashed = await asyncio.to_thread(hash_password, entity.password.get_secret_value())
        async with self.transaction(f"User insert '{entity.username}'") as db:
            await create_user(db, entity, hashed)
