"""User rows → User entities, deduplicated by username."""

from __future__ import annotations

from typing import Mapping

from pydantic import SecretStr

from importer.core.constants import ROLE_SEPARATOR, EntityType
from importer.entities import User
from importer.processors.base import EntityProcessor

MASK_CHAR = "*"


def mask_secret(secret: SecretStr) -> str:
    """Same length as the secret, none of its characters."""
    return MASK_CHAR * len(secret.get_secret_value())


class UserProcessor(EntityProcessor[User]):
    entity_type = EntityType.USER.value
    description = "Application accounts; passwords are hashed before storage"

    def map_row(self, row: Mapping[str, str], row_number: int) -> User:
        return self.build(
            User,
            row_number,
            username=self.field(row, "username"),
            password=SecretStr(self.field(row, "password")),
            nombre=self.field(row, "nombre"),
            apellido=self.field(row, "apellido"),
            email=self.field(row, "email"),
            roles=self.split_roles(row, "roles"),
            activo=self.boolean(row, "activo"),
        )

    def natural_key(self, entity: User) -> str:
        return entity.username

    def to_row(self, entity: User) -> dict[str, str]:
        return {
            "username": entity.username,
            "password": mask_secret(entity.password),
            "nombre": entity.nombre,
            "apellido": entity.apellido,
            "email": entity.email,
            "roles": ROLE_SEPARATOR.join(entity.roles),
            "activo": "true" if entity.activo else "false",
        }
