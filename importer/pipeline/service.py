"""
ImportService — the entry point callers use to run imports.

Owns one ProcessRegistry, one BatchOrchestrator and one worker pool; all
three live exactly as long as the service (start() … shutdown()).

    service = ImportService(processor_registry)
    await service.start()
    handle = service.submit_import("cliente", rows, "clients.csv")
    service.get_process_status(handle.job_id)
    result = await handle.result()
    await service.shutdown()
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Sequence

from importer.core.config import Settings, settings as default_settings
from importer.core.logging import get_logger
from importer.pipeline.errors import StructureValidationError
from importer.pipeline.orchestrator import BatchOrchestrator
from importer.pipeline.process_registry import ImportProcess, ProcessRegistry
from importer.pipeline.result import ImportResult
from importer.pipeline.worker_pool import ImportWorkerPool
from importer.processing.extractors import extract_file, preview_file, read_source
from importer.processing.extractors.base import RowRecord
from importer.processors.registry import ProcessorRegistry
from importer.validation.outcome import ValidationOutcome
from importer.validation.schema_validator import validate_structure, validate_upload

logger = get_logger(__name__)


@dataclass
class ImportHandle:
    """Returned immediately by submit_import; the result arrives later."""

    job_id: str
    entity_type: str
    file_name: str
    total_records: int
    future: asyncio.Future = field(repr=False)
    warnings: list[str] = field(default_factory=list)

    async def result(self) -> ImportResult:
        return await asyncio.shield(self.future)

    def done(self) -> bool:
        return self.future.done()

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "entity_type": self.entity_type,
            "file_name": self.file_name,
            "total_records": self.total_records,
            "warnings": list(self.warnings),
        }


class ImportService:
    """Asynchronous import facade over orchestrator, process registry and pool."""

    def __init__(
        self,
        processor_registry: ProcessorRegistry,
        config: Settings | None = None,
        *,
        process_registry: ProcessRegistry | None = None,
    ) -> None:
        self.config = config or default_settings
        self.processors = processor_registry
        self.processes = process_registry or ProcessRegistry(
            self.config.PROCESS_RETENTION_SECONDS,
            retain_cancelled=self.config.RETAIN_CANCELLED_PROCESSES,
        )
        self.orchestrator = BatchOrchestrator(self.processors, self.processes, self.config)
        self.pool = ImportWorkerPool(
            size=self.config.IMPORT_WORKERS,
            max_queue=self.config.IMPORT_QUEUE_CAPACITY,
        )
        self._sweeper: asyncio.Task | None = None

    # ─── Lifecycle ─────────────────────────────────────

    async def start(self) -> None:
        self.pool.start()
        if self._sweeper is None and self.config.PROCESS_SWEEP_INTERVAL_SECONDS > 0:
            self._sweeper = asyncio.create_task(self._sweep_loop(), name="import-process-sweeper")
        logger.info(
            "Import service started",
            workers=self.config.IMPORT_WORKERS,
            entity_types=self.processors.supported_types(),
        )

    async def shutdown(self, drain: bool = True) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            await asyncio.gather(self._sweeper, return_exceptions=True)
            self._sweeper = None
        await self.pool.shutdown(drain=drain, timeout=self.config.SHUTDOWN_TIMEOUT_SECONDS)
        logger.info("Import service stopped", drained=drain)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.PROCESS_SWEEP_INTERVAL_SECONDS)
            self.processes.sweep()

    def _abandon(self, job_id: str) -> None:
        """Close out a queued job the pool dropped before it started."""
        if self.processes.fail(job_id, "Import not started: service shut down"):
            logger.warning("Queued import abandoned at shutdown", job_id=job_id)

    # ─── Jobs ──────────────────────────────────────────

    def submit_import(
        self,
        entity_type: str,
        rows: Sequence[RowRecord],
        file_name: str,
        job_id: str | None = None,
    ) -> ImportHandle:
        """
        Register the job and queue it; returns without waiting for any row.

        Raises:
            ProcessorResolutionError: unknown entity type.
            DuplicateProcessError: job_id is already in use.
            PoolClosedError / PoolSaturatedError: the pool cannot take the job.
        """
        self.processors.resolve(entity_type)
        job_id = job_id or str(uuid.uuid4())
        rows = list(rows)

        process = self.processes.create(
            job_id, len(rows), entity_type=entity_type, file_name=file_name
        )
        try:
            future = self.pool.submit(
                lambda: self.orchestrator.run(entity_type, rows, file_name, job_id, process),
                name=job_id,
                on_cancel=lambda: self._abandon(job_id),
            )
        except Exception:
            self.processes.remove(job_id)
            raise

        logger.info(
            "Import submitted",
            job_id=job_id,
            entity_type=entity_type,
            file_name=file_name,
            total_records=len(rows),
        )
        return ImportHandle(
            job_id=job_id,
            entity_type=entity_type,
            file_name=file_name,
            total_records=len(rows),
            future=future,
        )

    def import_file(
        self,
        entity_type: str,
        filename: str | None,
        source: bytes | BinaryIO,
        job_id: str | None = None,
    ) -> ImportHandle:
        """
        Extract, run the structural gate, then submit.

        Raises:
            InputError subclasses for unusable uploads, including
            StructureValidationError carrying the failed outcome.
        """
        self.processors.resolve(entity_type)
        extracted = extract_file(filename, source, self.config.MAX_FILE_SIZE_BYTES)
        outcome = validate_structure(extracted, entity_type, self.config)
        if not outcome.valid:
            raise StructureValidationError(
                "; ".join(outcome.errors),
                outcome=outcome,
                details={"filename": extracted.filename, "entity_type": entity_type},
            )

        handle = self.submit_import(entity_type, extracted.rows, extracted.filename, job_id)
        handle.warnings.extend(outcome.warnings)
        return handle

    def get_process_status(self, job_id: str) -> ImportProcess | None:
        process = self.processes.get(job_id)
        return process.snapshot() if process is not None else None

    def list_active_processes(self) -> dict[str, ImportProcess]:
        return self.processes.list_active()

    def cancel_process(self, job_id: str) -> bool:
        return self.processes.cancel(job_id)

    # ─── Synchronous helpers ───────────────────────────

    def validate_file(self, entity_type: str, filename: str | None, source: bytes | BinaryIO) -> ValidationOutcome:
        return validate_upload(filename, read_source(source), entity_type, self.config)

    def preview(self, filename: str | None, source: bytes | BinaryIO, limit: int | None = None) -> dict[str, Any]:
        return preview_file(filename, source, limit, self.config.MAX_FILE_SIZE_BYTES)

    def statistics(self) -> dict[str, Any]:
        """Process counts by state plus the active configuration."""
        by_state = self.processes.count_by_state()
        return {
            "processes": {
                "total": sum(by_state.values()),
                "by_state": by_state,
            },
            "pool": {
                "workers": self.pool.size,
                "running": self.pool.running,
                "queued": self.pool.pending,
            },
            "config": {
                "batch_size": self.config.IMPORT_BATCH_SIZE,
                "max_file_size_bytes": self.config.MAX_FILE_SIZE_BYTES,
                "supported_formats": list(self.config.SUPPORTED_FORMATS),
                "retention_seconds": self.config.PROCESS_RETENTION_SECONDS,
            },
            "entity_types": self.processors.supported_types(),
        }
