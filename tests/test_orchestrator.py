import pytest

from importer.core.constants import ImportStatus, ProcessState
from importer.pipeline.orchestrator import BatchOrchestrator
from importer.pipeline.process_registry import ProcessRegistry
from importer.processors import ClientProcessor, ProcessorRegistry

from tests.conftest import InMemoryStore, client_rows, make_settings, row, valid_rut


def _orchestrator(processor_registry, batch_size=1000, **overrides):
    processes = ProcessRegistry(600)
    config = make_settings(IMPORT_BATCH_SIZE=batch_size, **overrides)
    return BatchOrchestrator(processor_registry, processes, config), processes


@pytest.mark.asyncio
async def test_mixed_file_reports_row_numbers(processor_registry, stores):
    orchestrator, processes = _orchestrator(processor_registry)
    rows = [
        row(rut="12345678-5", nombre="Ana", apellido="Perez", email="ana@example.com"),
        row(rut="11111111-1", nombre="Luis", apellido="Soto", email="not-an-email"),
    ]

    result = await orchestrator.run("cliente", rows, "clients.csv", "job-1")

    assert (result.succeeded, result.failed, result.skipped) == (1, 1, 0)
    assert result.errors == ["Row 3: Invalid email: not-an-email"]
    assert result.status == ImportStatus.PARTIAL
    assert result.sealed
    assert list(stores["cliente"].saved) == ["12345678-5"]

    process = processes.get("job-1")
    assert process.state == ProcessState.COMPLETED
    assert process.processed_count == 2
    assert process.finished_at is not None
    assert "Import finished: 2 rows processed" in result.info_messages


@pytest.mark.asyncio
@pytest.mark.parametrize("batch_size", [50, 1000])
async def test_batch_size_does_not_change_the_outcome(processor_registry, stores, batch_size):
    orchestrator, processes = _orchestrator(processor_registry, batch_size=batch_size)

    result = await orchestrator.run("cliente", client_rows(237), "big.csv", "job-1")

    assert result.succeeded == 237
    assert result.errors == []
    process = processes.get("job-1")
    assert process.processed_count == 237
    assert process.detailed_progress == 237
    assert process.progress_percentage == 100.0
    assert len(stores["cliente"].saved) == 237


@pytest.mark.asyncio
async def test_duplicate_in_later_batch_is_skipped(processor_registry, stores):
    orchestrator, _ = _orchestrator(processor_registry, batch_size=3)
    rows = client_rows(5)
    rows.append(rows[0])

    result = await orchestrator.run("cliente", rows, "dupes.csv", "job-1")

    assert (result.succeeded, result.skipped) == (5, 1)
    assert result.warnings == [f"Row 7: duplicate cliente '{valid_rut(0)}', skipped"]
    assert result.status == ImportStatus.SUCCESS_WITH_WARNINGS


@pytest.mark.asyncio
async def test_existing_entity_is_skipped_not_saved(stores):
    stores["cliente"] = InMemoryStore("rut", existing=(valid_rut(0),))
    registry = ProcessorRegistry([ClientProcessor(stores["cliente"])])
    orchestrator, _ = _orchestrator(registry)

    result = await orchestrator.run("cliente", client_rows(2), "c.csv", "job-1")

    assert (result.succeeded, result.skipped) == (1, 1)
    assert list(stores["cliente"].saved) == [valid_rut(1)]


@pytest.mark.asyncio
async def test_cancellation_stops_before_next_row(processor_registry, stores):
    orchestrator, processes = _orchestrator(processor_registry, batch_size=2)

    def cancel_after_three(store):
        if len(store.saved) == 3:
            processes.cancel("job-1")

    stores["cliente"].on_save = cancel_after_three

    result = await orchestrator.run("cliente", client_rows(10), "c.csv", "job-1")

    assert result.succeeded == 3
    assert stores["cliente"].save_attempts == 3
    assert "Import cancelled after 3 of 10 rows" in result.info_messages
    process = processes.get("job-1")
    assert process.state == ProcessState.CANCELLED
    assert process.processed_count == 2


@pytest.mark.asyncio
async def test_job_cancelled_before_start_does_nothing(processor_registry, stores):
    orchestrator, processes = _orchestrator(processor_registry)
    processes.create("job-1", 3, entity_type="cliente")
    processes.cancel("job-1")

    result = await orchestrator.run("cliente", client_rows(3), "c.csv", "job-1")

    assert result.processed == 0
    assert result.info_messages == ["Import not started: process is CANCELLED"]
    assert stores["cliente"].save_attempts == 0


@pytest.mark.asyncio
async def test_unexpected_exception_fails_job_and_keeps_partial_result():
    class ExplodingClientProcessor(ClientProcessor):
        def map_row(self, row, row_number):
            if row_number == 4:
                raise RuntimeError("boom")
            return super().map_row(row, row_number)

    store = InMemoryStore("rut")
    orchestrator, processes = _orchestrator(ProcessorRegistry([ExplodingClientProcessor(store)]))

    result = await orchestrator.run("cliente", client_rows(5), "c.csv", "job-1")

    assert result.succeeded == 2
    assert result.errors == ["General processing error: boom"]
    assert result.sealed
    process = processes.get("job-1")
    assert process.state == ProcessState.ERROR
    assert process.error_message == "General processing error: boom"


@pytest.mark.asyncio
async def test_unknown_entity_type_fails_job(processor_registry):
    orchestrator, processes = _orchestrator(processor_registry)

    result = await orchestrator.run("proveedor", client_rows(1), "p.csv", "job-1")

    assert result.processed == 0
    assert result.errors[0].startswith("No processor for entity type 'proveedor'")
    assert processes.get("job-1").state == ProcessState.ERROR


@pytest.mark.asyncio
async def test_mapping_error_fails_only_that_row(processor_registry, stores):
    orchestrator, _ = _orchestrator(processor_registry)
    rows = [
        row(codigo="AB1", nombre="Uno", precio="cheap"),
        row(codigo="AB2", nombre="Dos", precio="10.50", stock="3"),
    ]

    result = await orchestrator.run("producto", rows, "p.csv", "job-1")

    assert (result.succeeded, result.failed) == (1, 1)
    assert result.errors == ["Row 2: 'precio' must be numeric, got 'cheap'"]
    assert list(stores["producto"].saved) == ["AB2"]


@pytest.mark.asyncio
async def test_transient_save_failures_are_retried(processor_registry, stores):
    orchestrator, _ = _orchestrator(processor_registry, PERSIST_MAX_RETRIES=2)
    stores["cliente"].transient_failures = 2

    result = await orchestrator.run("cliente", client_rows(1), "c.csv", "job-1")

    assert result.succeeded == 1
    assert stores["cliente"].save_attempts == 3


@pytest.mark.asyncio
async def test_retries_exhausted_fail_the_row(processor_registry, stores):
    orchestrator, processes = _orchestrator(processor_registry, PERSIST_MAX_RETRIES=1)
    stores["cliente"].transient_failures = 2

    result = await orchestrator.run("cliente", client_rows(2), "c.csv", "job-1")

    assert (result.succeeded, result.failed) == (1, 1)
    assert result.errors == ["Row 2: connection reset"]
    assert stores["cliente"].save_attempts == 3
    assert processes.get("job-1").state == ProcessState.COMPLETED


@pytest.mark.asyncio
async def test_store_failure_fails_row_and_job_continues(stores):
    store = InMemoryStore("rut", fail_keys=(valid_rut(0),))
    orchestrator, processes = _orchestrator(ProcessorRegistry([ClientProcessor(store)]))

    result = await orchestrator.run("cliente", client_rows(3), "c.csv", "job-1")

    assert (result.succeeded, result.failed) == (2, 1)
    assert result.errors == [f"Row 2: Could not save cliente '{valid_rut(0)}': disk full"]
    assert processes.get("job-1").state == ProcessState.COMPLETED


@pytest.mark.asyncio
async def test_empty_row_list_completes(processor_registry):
    orchestrator, processes = _orchestrator(processor_registry)

    result = await orchestrator.run("usuario", [], "u.csv", "job-1")

    assert result.status == ImportStatus.NOT_PROCESSED
    assert processes.get("job-1").state == ProcessState.COMPLETED
