"""
Domain-specific exception hierarchy for the import pipeline.

All import exceptions inherit from ImportPipelineError so callers can
catch broadly or narrowly as needed.  Each exception carries structured
context (job id, row number, etc.) for logging/debugging.

Taxonomy:
    InputError        — bad upload; raised synchronously, before any job exists
    MappingError      — one row could not be coerced into an entity
    PersistenceError  — one row could not be saved
    ProcessorResolutionError / unexpected exceptions — job-fatal
"""

from __future__ import annotations

from typing import Any


class ImportPipelineError(Exception):
    """Base exception for all import pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        job_id: str | None = None,
        row_number: int | None = None,
        details: dict | None = None,
    ) -> None:
        self.message = message
        self.job_id = job_id
        self.row_number = row_number
        self.details = details or {}
        super().__init__(message)


# ─── Input errors (synchronous, pre-job) ──────────────

class InputError(ImportPipelineError):
    """The uploaded file cannot be accepted."""
    pass


class InvalidInputError(InputError):
    """Missing filename, undecodable content or an unreadable workbook."""
    pass


class UnsupportedFormatError(InputError):
    """The file extension is not one of the accepted formats."""

    def __init__(self, message: str, *, extension: str = "", **kwargs) -> None:
        self.extension = extension
        super().__init__(message, **kwargs)


class EmptyFileError(InputError):
    """The upload has no content."""
    pass


class FileTooLargeError(InputError):
    """The upload exceeds the configured size limit."""
    pass


class MissingHeadersError(InputError):
    """No usable header row was found."""
    pass


class StructureValidationError(InputError):
    """Headers or shape do not satisfy the entity's column contract."""

    def __init__(self, message: str, *, outcome: Any = None, **kwargs) -> None:
        self.outcome = outcome
        super().__init__(message, **kwargs)


class DuplicateProcessError(InputError):
    """A live process with the same job id already exists."""
    pass


# ─── Row-level errors ─────────────────────────────────

class ExtractionError(ImportPipelineError):
    """A single record of the source file could not be parsed."""
    pass


class MappingError(ImportPipelineError):
    """A row value could not be coerced into the entity field."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: str | None = None,
        **kwargs,
    ) -> None:
        self.field = field
        self.value = value
        super().__init__(message, **kwargs)


class PersistenceError(ImportPipelineError):
    """Saving an entity failed."""
    pass


class TransientPersistenceError(PersistenceError):
    """Saving failed for a reason that may go away on retry (lost connection, lock)."""
    pass


# ─── Job-level errors ─────────────────────────────────

class ProcessorResolutionError(ImportPipelineError):
    """No processor is registered for the requested entity type."""

    def __init__(self, message: str, *, supported: list[str] | None = None, **kwargs) -> None:
        self.supported = supported or []
        super().__init__(message, **kwargs)


class ResultSealedError(ImportPipelineError):
    """An attempt was made to modify a finished ImportResult."""
    pass


# ─── Worker pool ──────────────────────────────────────

class PoolClosedError(ImportPipelineError):
    """Work was submitted after the pool started shutting down."""
    pass


class PoolSaturatedError(ImportPipelineError):
    """The pool queue is full."""
    pass
