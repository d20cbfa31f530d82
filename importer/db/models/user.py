"""
User model — application accounts created by the "usuario" import.

Roles are stored as a ';'-joined string (e.g. "ADMIN;VENTAS").
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from importer.db.models.base import Base, utcnow


class UserRecord(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(Text, nullable=False)
    nombre: Mapped[str] = mapped_column(String(50), nullable=False)
    apellido: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    roles: Mapped[str] = mapped_column(String(255), nullable=False, default="USER")

    activo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Timestamps
    fecha_creacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    ultimo_acceso: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<UserRecord id={self.id} {self.username} roles={self.roles} active={self.activo}>"
