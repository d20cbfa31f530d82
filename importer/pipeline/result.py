"""
ImportResult — aggregated outcome of one import job.

Mutated row by row (or merged batch by batch) while the job runs and
sealed once the job reaches a terminal state; after that every mutator
raises ResultSealedError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from importer.core.constants import ImportStatus
from importer.pipeline.errors import ResultSealedError


@dataclass
class ImportResult:
    """Counts and ordered messages for one import."""

    entity_type: str
    file_name: str
    imported_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    info_messages: list[str] = field(default_factory=list)
    elapsed_ms: int = 0
    _sealed: bool = field(default=False, init=False, repr=False, compare=False)

    # ─── Mutators ──────────────────────────────────────

    def _check_open(self) -> None:
        if self._sealed:
            raise ResultSealedError(
                f"Result for '{self.file_name}' is final and cannot be modified",
            )

    def record_success(self, warnings: Iterable[str] = ()) -> None:
        self._check_open()
        self.succeeded += 1
        self.warnings.extend(warnings)

    def record_failure(self, errors: Iterable[str], warnings: Iterable[str] = ()) -> None:
        self._check_open()
        self.failed += 1
        self.errors.extend(errors)
        self.warnings.extend(warnings)

    def record_skip(self, warnings: Iterable[str]) -> None:
        self._check_open()
        self.skipped += 1
        self.warnings.extend(warnings)

    def add_error(self, message: str) -> None:
        self._check_open()
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self._check_open()
        self.warnings.append(message)

    def add_info(self, message: str) -> None:
        self._check_open()
        self.info_messages.append(message)

    def merge(self, other: ImportResult) -> ImportResult:
        """Add another partial result's counts; messages keep their order."""
        self._check_open()
        self.succeeded += other.succeeded
        self.failed += other.failed
        self.skipped += other.skipped
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.info_messages.extend(other.info_messages)
        return self

    def seal(self, elapsed_ms: int | None = None) -> ImportResult:
        if elapsed_ms is not None and not self._sealed:
            self.elapsed_ms = elapsed_ms
        self._sealed = True
        return self

    # ─── Derived values ────────────────────────────────

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed + self.skipped

    @property
    def success_rate(self) -> float:
        """Percentage of processed rows that were saved."""
        if self.processed == 0:
            return 0.0
        return self.succeeded / self.processed * 100.0

    @property
    def has_errors(self) -> bool:
        return bool(self.errors) or self.failed > 0

    @property
    def status(self) -> ImportStatus:
        if self.processed == 0:
            return ImportStatus.NOT_PROCESSED
        if self.failed == 0:
            if self.skipped > 0 or self.warnings:
                return ImportStatus.SUCCESS_WITH_WARNINGS
            return ImportStatus.SUCCESS
        if self.succeeded > 0:
            return ImportStatus.PARTIAL
        return ImportStatus.FAILED

    def summary(self) -> str:
        lines = [
            f"Import of {self.entity_type} finished.",
            f"File: {self.file_name}",
            f"Date: {self.imported_at.isoformat()}",
            "",
            "Results:",
            f"- Processed: {self.processed}",
            f"- Succeeded: {self.succeeded}",
            f"- Failed: {self.failed}",
            f"- Skipped: {self.skipped}",
            f"- Success rate: {self.success_rate:.2f}%",
        ]
        if self.elapsed_ms > 0:
            lines.append(f"- Processing time: {self.elapsed_ms} ms")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Serialise for API responses."""
        return {
            "entity_type": self.entity_type,
            "file_name": self.file_name,
            "imported_at": self.imported_at.isoformat(),
            "status": self.status.value,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "success_rate": round(self.success_rate, 2),
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "info_messages": list(self.info_messages),
            "elapsed_ms": self.elapsed_ms,
        }
