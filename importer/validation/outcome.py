"""The verdict returned by every validator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True)
class ValidationOutcome:
    """Errors block the record; warnings and infos are advisory."""

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    infos: tuple[str, ...] = ()
    row_number: int | None = None

    @property
    def valid(self) -> bool:
        return not self.errors

    @classmethod
    def build(
        cls,
        errors: Iterable[str] = (),
        warnings: Iterable[str] = (),
        infos: Iterable[str] = (),
        row_number: int | None = None,
    ) -> ValidationOutcome:
        return cls(
            errors=tuple(errors),
            warnings=tuple(warnings),
            infos=tuple(infos),
            row_number=row_number,
        )

    @classmethod
    def failure(cls, message: str, row_number: int | None = None) -> ValidationOutcome:
        return cls(errors=(message,), row_number=row_number)

    def merge(self, other: ValidationOutcome) -> ValidationOutcome:
        return ValidationOutcome(
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
            infos=self.infos + other.infos,
            row_number=self.row_number if self.row_number is not None else other.row_number,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "infos": list(self.infos),
            "row_number": self.row_number,
        }
