"""
Typed entities produced by the processors from a row of the upload.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from importer.core.constants import DEFAULT_ROLE
from importer.db.models.base import utcnow


class Client(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    rut: str
    nombre: str
    apellido: str
    email: str
    telefono: str | None = None
    direccion: str | None = None
    categoria: str | None = None
    fecha_registro: datetime = Field(default_factory=utcnow)


class Product(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    codigo: str
    nombre: str
    descripcion: str | None = None
    precio: Decimal | None = None
    stock: int = 0
    marca: str | None = None
    modelo: str | None = None
    activo: bool = True
    fecha_creacion: datetime = Field(default_factory=utcnow)
    fecha_actualizacion: datetime = Field(default_factory=utcnow)


class User(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str
    password: SecretStr
    nombre: str
    apellido: str
    email: str
    roles: list[str] = Field(default_factory=lambda: [DEFAULT_ROLE])
    activo: bool = True
    fecha_creacion: datetime = Field(default_factory=utcnow)
    ultimo_acceso: datetime | None = None
