"""Client rows → Client entities, deduplicated by RUT."""

from __future__ import annotations

from typing import Mapping

from importer.core.constants import EntityType
from importer.entities import Client
from importer.processors.base import EntityProcessor
from importer.validation.business_rules import normalize_rut


class ClientProcessor(EntityProcessor[Client]):
    entity_type = EntityType.CLIENT.value
    description = "Customers identified by their national id (RUT)"

    def map_row(self, row: Mapping[str, str], row_number: int) -> Client:
        return self.build(
            Client,
            row_number,
            rut=self.field(row, "rut"),
            nombre=self.field(row, "nombre"),
            apellido=self.field(row, "apellido"),
            email=self.field(row, "email"),
            telefono=self.optional(row, "telefono"),
            direccion=self.optional(row, "direccion"),
            categoria=self.optional(row, "categoria"),
        )

    def natural_key(self, entity: Client) -> str:
        return normalize_rut(entity.rut)

    def to_row(self, entity: Client) -> dict[str, str]:
        return {
            "rut": entity.rut,
            "nombre": entity.nombre,
            "apellido": entity.apellido,
            "email": entity.email,
            "telefono": entity.telefono or "",
            "direccion": entity.direccion or "",
            "categoria": entity.categoria or "",
        }
