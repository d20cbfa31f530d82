"""
BatchOrchestrator — drives one import job from rows to ImportResult.

Responsibilities:
    - Resolve the EntityProcessor via the ProcessorRegistry
    - Split rows into fixed-size batches, processed sequentially
    - Map → validate → dedupe → save every row, in file order
    - Aggregate per-row outcomes into the job's ImportResult
    - Keep the job's ImportProcess progress current
    - Stop between rows when the job is cancelled
    - Turn unexpected failures into an ERROR job with a partial result
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Sequence

import structlog

from importer.core.config import Settings, settings as default_settings
from importer.core.constants import FIRST_DATA_ROW_NUMBER, ProcessState
from importer.core.logging import get_logger
from importer.pipeline.errors import (
    MappingError,
    PersistenceError,
    ProcessorResolutionError,
    TransientPersistenceError,
)
from importer.pipeline.process_registry import ImportProcess, ProcessRegistry
from importer.pipeline.result import ImportResult
from importer.processing.extractors.base import RowRecord
from importer.processors.base import EntityProcessor
from importer.processors.registry import ProcessorRegistry

logger = get_logger(__name__)


def _prefixed(row_number: int, messages: Sequence[str]) -> list[str]:
    return [f"Row {row_number}: {message}" for message in messages]


class BatchOrchestrator:
    """
    Runs import jobs against a processor registry and a process registry.

    Usage::

        orchestrator = BatchOrchestrator(processors, processes)
        result = await orchestrator.run("cliente", rows, "clients.csv", job_id)
    """

    def __init__(
        self,
        processor_registry: ProcessorRegistry,
        process_registry: ProcessRegistry,
        config: Settings | None = None,
    ) -> None:
        self.processors = processor_registry
        self.processes = process_registry
        self.config = config or default_settings

    async def run(
        self,
        entity_type: str,
        rows: Sequence[RowRecord],
        file_name: str,
        job_id: str,
        process: ImportProcess | None = None,
    ) -> ImportResult:
        """
        Full job execution.  Never raises for row-level or job-level
        failures; those end up in the result and the process state.
        Task cancellation is the exception: the job is marked ERROR and
        CancelledError propagates.

        `process` is the record registered at submit time; it is looked up
        (or created) by job id when omitted.
        """
        started = time.perf_counter()
        result = ImportResult(entity_type=entity_type, file_name=file_name)
        log = logger.bind(job_id=job_id, entity_type=entity_type, file_name=file_name)

        if process is None:
            process = self.processes.get(job_id)
        if process is None:
            process = self.processes.create(
                job_id, len(rows), entity_type=entity_type, file_name=file_name
            )
        elif process.is_terminal:
            # cancelled while still queued
            log.info("Job skipped, process already terminal", state=process.state)
            result.add_info(f"Import not started: process is {process.state.value}")
            return result.seal(elapsed_ms=0)

        log.info("Import started", total_records=len(rows), batch_size=self.config.IMPORT_BATCH_SIZE)

        try:
            processor = self.processors.resolve(entity_type)
            await self._run_batches(processor, rows, process, result, log)

        except asyncio.CancelledError:
            log.warning("Import task cancelled", processed=result.processed)
            self._finish_with_error(process, result, "Import interrupted before completion")
            result.seal(elapsed_ms=_elapsed_ms(started))
            raise

        except ProcessorResolutionError as exc:
            log.error("Processor resolution failed", error=str(exc))
            self._finish_with_error(process, result, str(exc))

        except Exception as exc:
            log.exception("Import failed", error=str(exc), processed=result.processed)
            self._finish_with_error(process, result, f"General processing error: {exc}")

        else:
            if process.transition(ProcessState.COMPLETED, at=self.processes.clock()):
                result.add_info(f"Import finished: {result.processed} rows processed")
            else:
                result.add_info(
                    f"Import cancelled after {result.processed} of {len(rows)} rows"
                )

        result.seal(elapsed_ms=_elapsed_ms(started))
        log.info(
            "Import finished",
            state=process.state,
            succeeded=result.succeeded,
            failed=result.failed,
            skipped=result.skipped,
            elapsed_ms=result.elapsed_ms,
        )
        return result

    # ─── Batches ───────────────────────────────────────

    async def _run_batches(
        self,
        processor: EntityProcessor[Any],
        rows: Sequence[RowRecord],
        process: ImportProcess,
        result: ImportResult,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        batch_size = self.config.IMPORT_BATCH_SIZE
        total_batches = (len(rows) + batch_size - 1) // batch_size

        for batch_index, offset in enumerate(range(0, len(rows), batch_size), start=1):
            batch = rows[offset : offset + batch_size]
            done = 0

            for index, row in enumerate(batch):
                if process.state == ProcessState.CANCELLED:
                    break
                row_number = offset + index + FIRST_DATA_ROW_NUMBER
                await self._process_row(processor, row, row_number, result, log)
                process.touch(offset + index + 1)
                done += 1

            process.advance(done)
            log.debug(
                f"Batch {batch_index}/{total_batches} done",
                rows=done,
                processed=result.processed,
            )

            if process.state == ProcessState.CANCELLED:
                log.info("Import cancelled", processed=result.processed)
                return

            # let status polls and other jobs run between batches
            await asyncio.sleep(0)

    async def _process_row(
        self,
        processor: EntityProcessor[Any],
        row: RowRecord,
        row_number: int,
        result: ImportResult,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        try:
            entity = processor.map_row(row, row_number)
        except MappingError as exc:
            message = str(exc)
            if not message.startswith(f"Row {row_number}:"):
                message = f"Row {row_number}: {message}"
            result.record_failure([message])
            log.debug("Row mapping failed", row_number=row_number, field=exc.field)
            return

        outcome = processor.validate(entity, row_number)
        warnings = _prefixed(row_number, outcome.warnings)

        if not outcome.valid:
            result.record_failure(_prefixed(row_number, outcome.errors), warnings)
            return

        try:
            if await processor.exists(entity):
                key = processor.natural_key(entity)
                result.record_skip(
                    [f"Row {row_number}: duplicate {processor.entity_type} '{key}', skipped", *warnings]
                )
                return
            await self._save_with_retry(processor, entity, row_number, log)
        except PersistenceError as exc:
            result.record_failure([f"Row {row_number}: {exc}"], warnings)
            log.warning("Row not saved", row_number=row_number, error=str(exc))
            return

        result.record_success(warnings)

    async def _save_with_retry(
        self,
        processor: EntityProcessor[Any],
        entity: Any,
        row_number: int,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        """Retry transient persistence failures with exponential backoff."""
        max_attempts = self.config.PERSIST_MAX_RETRIES + 1

        for attempt in range(1, max_attempts + 1):
            try:
                await processor.save(entity)
                return
            except TransientPersistenceError as exc:
                if attempt >= max_attempts:
                    raise
                wait_seconds = self.config.PERSIST_RETRY_BACKOFF_SECONDS * 2 ** (attempt - 1)
                log.warning(
                    f"Save failed (attempt {attempt}/{max_attempts}), retrying in {wait_seconds}s",
                    row_number=row_number,
                    error=str(exc),
                )
                await asyncio.sleep(wait_seconds)

    # ─── Finalise ──────────────────────────────────────

    def _finish_with_error(self, process: ImportProcess, result: ImportResult, message: str) -> None:
        result.add_error(message)
        process.transition(ProcessState.ERROR, at=self.processes.clock(), error_message=message)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
