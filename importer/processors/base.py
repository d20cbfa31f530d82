"""
EntityProcessor — abstract base class for per-entity-type processing.

One subclass per importable entity.  The orchestrator drives every row
through the same four calls:

    entity  = processor.map_row(row, row_number)     # may raise MappingError
    outcome = processor.validate(entity, row_number)
    if outcome.valid and not await processor.exists(entity):
        await processor.save(entity)                 # may raise PersistenceError
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Generic, Mapping, Protocol, TypeVar

from pydantic import ValidationError as PydanticValidationError

from importer.core.constants import DEFAULT_ROLE, ROLE_SEPARATOR, TRUTHY_TOKENS
from importer.core.logging import get_logger
from importer.pipeline.errors import ImportPipelineError, MappingError, PersistenceError
from importer.validation.business_rules import FieldValidator
from importer.validation.outcome import ValidationOutcome

logger = get_logger(__name__)

T = TypeVar("T")


class EntityStore(Protocol[T]):
    """Persistence capability a processor needs for its entity."""

    async def exists_by_key(self, key: str) -> bool: ...

    async def save(self, entity: T) -> None: ...


class EntityProcessor(ABC, Generic[T]):
    """
    Base class for every entity processor.

    Subclasses MUST implement:
        - entity_type (str)   — tag resolved by the registry, e.g. "cliente"
        - map_row(row, n)     — build the entity from a RowRecord
        - natural_key(entity) — business-unique identifier
        - to_row(entity)      — re-serialize for FieldValidator
    """

    entity_type: str = "unknown"
    description: str = "No description"

    def __init__(self, store: EntityStore[T], validator: FieldValidator | None = None) -> None:
        self.store = store
        self.validator = validator or FieldValidator()

    @abstractmethod
    def map_row(self, row: Mapping[str, str], row_number: int) -> T:
        """Coerce a RowRecord into an entity.  Raise MappingError on bad values."""
        ...

    @abstractmethod
    def natural_key(self, entity: T) -> str:
        ...

    @abstractmethod
    def to_row(self, entity: T) -> dict[str, str]:
        """Field values as strings, sensitive ones masked."""
        ...

    def validate(self, entity: T, row_number: int) -> ValidationOutcome:
        return self.validator.validate_row(self.to_row(entity), self.entity_type, row_number)

    async def exists(self, entity: T) -> bool:
        key = self.natural_key(entity)
        try:
            return await self.store.exists_by_key(key)
        except ImportPipelineError:
            raise
        except Exception as exc:
            raise PersistenceError(
                f"Duplicate lookup failed for {self.entity_type} '{key}': {exc}",
                details={"entity_type": self.entity_type, "key": key},
            ) from exc

    async def save(self, entity: T) -> None:
        key = self.natural_key(entity)
        try:
            await self.store.save(entity)
        except ImportPipelineError:
            raise
        except Exception as exc:
            raise PersistenceError(
                f"Could not save {self.entity_type} '{key}': {exc}",
                details={"entity_type": self.entity_type, "key": key},
            ) from exc

    # ─── Helpers available to all processors ───────────

    @staticmethod
    def field(row: Mapping[str, str], name: str) -> str:
        """Trimmed value for a header; exact match first, then case-insensitive."""
        value = row.get(name)
        if value is None:
            wanted = name.strip().lower()
            for header, candidate in row.items():
                if header.strip().lower() == wanted:
                    value = candidate
                    break
        return str(value).strip() if value is not None else ""

    def optional(self, row: Mapping[str, str], name: str) -> str | None:
        return self.field(row, name) or None

    def decimal(self, row: Mapping[str, str], name: str, row_number: int) -> Decimal | None:
        text = self.field(row, name)
        if not text:
            return None
        try:
            value = Decimal(text)
        except InvalidOperation:
            raise MappingError(
                f"Row {row_number}: '{name}' must be numeric, got '{text}'",
                row_number=row_number,
                field=name,
                value=text,
            ) from None
        if not value.is_finite():
            raise MappingError(
                f"Row {row_number}: '{name}' must be a finite number, got '{text}'",
                row_number=row_number,
                field=name,
                value=text,
            )
        return value

    def integer(self, row: Mapping[str, str], name: str, row_number: int, default: int = 0) -> int:
        text = self.field(row, name)
        if not text:
            return default
        try:
            return int(text)
        except ValueError:
            raise MappingError(
                f"Row {row_number}: '{name}' must be a whole number, got '{text}'",
                row_number=row_number,
                field=name,
                value=text,
            ) from None

    def boolean(self, row: Mapping[str, str], name: str, default: bool = True) -> bool:
        text = self.field(row, name)
        if not text:
            return default
        return text.lower() in TRUTHY_TOKENS

    def split_roles(self, row: Mapping[str, str], name: str) -> list[str]:
        text = self.field(row, name)
        roles = [part.strip().upper() for part in text.split(ROLE_SEPARATOR) if part.strip()]
        return roles or [DEFAULT_ROLE]

    def build(self, model: type[T], row_number: int, **values: Any) -> T:
        """Construct the pydantic entity, turning its errors into MappingError."""
        try:
            return model(**values)
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            field_name = ".".join(str(part) for part in first.get("loc", ())) or None
            raise MappingError(
                f"Row {row_number}: invalid value for '{field_name}': {first.get('msg')}",
                row_number=row_number,
                field=field_name,
            ) from exc
