from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from importer.core.constants import EntityType
from importer.repositories.base import SessionStore
from importer.repositories.clients import ClientStore
from importer.repositories.products import ProductStore
from importer.repositories.users import UserStore


def build_stores(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, SessionStore]:
    """One store per entity type tag, sharing a session factory."""
    return {
        EntityType.CLIENT.value: ClientStore(session_factory),
        EntityType.PRODUCT.value: ProductStore(session_factory),
        EntityType.USER.value: UserStore(session_factory),
    }


__all__ = ["ClientStore", "ProductStore", "SessionStore", "UserStore", "build_stores"]
