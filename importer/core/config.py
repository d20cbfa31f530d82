"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings


def _default_entity_columns() -> dict[str, dict[str, Any]]:
    """Column contract per entity type: required/optional headers and record cap."""
    return {
        "cliente": {
            "required": ["nombre", "apellido", "email", "rut"],
            "optional": ["telefono", "direccion", "categoria"],
            "max_records": 5000,
        },
        "producto": {
            "required": ["codigo", "nombre", "precio"],
            "optional": ["descripcion", "stock", "marca", "modelo"],
            "max_records": 10000,
        },
        "usuario": {
            "required": ["username", "password", "nombre", "apellido", "email"],
            "optional": ["roles", "activo"],
            "max_records": 1000,
        },
    }


class Settings(BaseSettings):
    # ── Application ───────────────────────────
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ── Database ──────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./importer.db"
    DATABASE_ECHO: bool = False

    # ── Batch execution ───────────────────────
    IMPORT_BATCH_SIZE: int = Field(default=1000, ge=1)
    IMPORT_WORKERS: int = Field(default=2, ge=1)
    IMPORT_QUEUE_CAPACITY: int = Field(default=10, ge=0)
    SHUTDOWN_TIMEOUT_SECONDS: float = 30.0

    # ── Persistence retries ───────────────────
    PERSIST_MAX_RETRIES: int = Field(default=2, ge=0)
    PERSIST_RETRY_BACKOFF_SECONDS: float = 0.5

    # ── Process tracking ──────────────────────
    PROCESS_RETENTION_SECONDS: int = 600
    RETAIN_CANCELLED_PROCESSES: bool = True
    PROCESS_SWEEP_INTERVAL_SECONDS: float = 60.0

    # ── Files ─────────────────────────────────
    MAX_FILE_SIZE_BYTES: int = 10 * 1024 * 1024
    SUPPORTED_FORMATS: list[str] = ["csv", "xlsx", "xls"]
    STRUCTURE_SAMPLE_ROWS: int = 10
    PREVIEW_ROWS: int = 10

    # ── Entity contracts ──────────────────────
    ENTITY_COLUMNS: dict[str, dict[str, Any]] = Field(default_factory=_default_entity_columns)

    model_config = {"env_file": ".env", "extra": "ignore"}

    def required_columns(self, entity_type: str) -> list[str]:
        return list(self.ENTITY_COLUMNS.get(entity_type.lower(), {}).get("required", []))

    def optional_columns(self, entity_type: str) -> list[str]:
        return list(self.ENTITY_COLUMNS.get(entity_type.lower(), {}).get("optional", []))

    def max_records(self, entity_type: str) -> int | None:
        return self.ENTITY_COLUMNS.get(entity_type.lower(), {}).get("max_records")


settings = Settings()
