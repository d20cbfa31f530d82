"""Shared constants and enums used across the application."""

from enum import StrEnum


class ProcessState(StrEnum):
    """Lifecycle state of a background import job."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"
    CANCELLED = "CANCELLED"


TERMINAL_STATES = frozenset({ProcessState.COMPLETED, ProcessState.ERROR, ProcessState.CANCELLED})


class ImportStatus(StrEnum):
    """Overall verdict of a finished import."""

    NOT_PROCESSED = "NOT_PROCESSED"
    SUCCESS = "SUCCESS"
    SUCCESS_WITH_WARNINGS = "SUCCESS_WITH_WARNINGS"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class FileFormat(StrEnum):
    """Accepted upload formats, keyed by file extension."""

    CSV = "csv"
    XLSX = "xlsx"
    XLS = "xls"


class EntityType(StrEnum):
    """Entity types that can be imported."""

    CLIENT = "cliente"
    PRODUCT = "producto"
    USER = "usuario"


class UserRole(StrEnum):
    """Roles an imported user may carry."""

    ADMIN = "ADMIN"
    VENTAS = "VENTAS"
    PRODUCTOS = "PRODUCTOS"
    GERENTE = "GERENTE"
    USER = "USER"


ROLE_SEPARATOR = ";"
DEFAULT_ROLE = UserRole.USER.value

TRUTHY_TOKENS = frozenset({"true", "1", "si", "sí", "yes", "y", "s"})

# Data rows start right after the header line.
FIRST_DATA_ROW_NUMBER = 2
