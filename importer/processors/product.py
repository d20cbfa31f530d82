"""Product rows → Product entities, deduplicated by product code."""

from __future__ import annotations

from typing import Mapping

from importer.core.constants import EntityType
from importer.entities import Product
from importer.processors.base import EntityProcessor


class ProductProcessor(EntityProcessor[Product]):
    entity_type = EntityType.PRODUCT.value
    description = "Catalogue items keyed by an upper-case product code"

    def map_row(self, row: Mapping[str, str], row_number: int) -> Product:
        return self.build(
            Product,
            row_number,
            codigo=self.field(row, "codigo").upper(),
            nombre=self.field(row, "nombre"),
            descripcion=self.optional(row, "descripcion"),
            precio=self.decimal(row, "precio", row_number),
            stock=self.integer(row, "stock", row_number),
            marca=self.optional(row, "marca"),
            modelo=self.optional(row, "modelo"),
        )

    def natural_key(self, entity: Product) -> str:
        return entity.codigo

    def to_row(self, entity: Product) -> dict[str, str]:
        return {
            "codigo": entity.codigo,
            "nombre": entity.nombre,
            "descripcion": entity.descripcion or "",
            "precio": "" if entity.precio is None else str(entity.precio),
            "stock": str(entity.stock),
            "marca": entity.marca or "",
            "modelo": entity.modelo or "",
        }
