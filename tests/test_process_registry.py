import threading

import pytest

from importer.core.constants import ProcessState
from importer.pipeline.errors import DuplicateProcessError
from importer.pipeline.process_registry import ProcessRegistry


def test_create_and_get(fake_clock):
    registry = ProcessRegistry(600, clock=fake_clock)
    process = registry.create("job-1", 10, entity_type="cliente", file_name="c.csv")

    assert registry.get("job-1") is process
    assert process.state == ProcessState.IN_PROGRESS
    assert process.started_at == fake_clock.now


def test_duplicate_live_id_rejected(fake_clock):
    registry = ProcessRegistry(600, clock=fake_clock)
    registry.create("job-1", 10)
    with pytest.raises(DuplicateProcessError):
        registry.create("job-1", 5)


def test_progress_is_monotonic_and_capped(fake_clock):
    registry = ProcessRegistry(600, clock=fake_clock)
    process = registry.create("job-1", 10)

    process.advance(4)
    process.advance(20)
    process.touch(7)
    process.touch(3)

    assert process.processed_count == 10
    assert process.detailed_progress == 7
    assert process.progress_percentage == 100.0


def test_state_never_leaves_terminal(fake_clock):
    registry = ProcessRegistry(600, clock=fake_clock)
    process = registry.create("job-1", 10)

    assert registry.complete("job-1")
    assert not registry.cancel("job-1")
    assert not registry.fail("job-1", "late")
    assert process.state == ProcessState.COMPLETED
    assert process.error_message is None


def test_updates_after_terminal_are_ignored(fake_clock):
    registry = ProcessRegistry(600, clock=fake_clock)
    process = registry.create("job-1", 10)
    registry.cancel("job-1")

    assert not process.advance(5)
    assert not process.touch(5)
    assert process.processed_count == 0


def test_cancel_removes_from_active_and_keeps_status_for_retention(fake_clock):
    registry = ProcessRegistry(600, clock=fake_clock)
    registry.create("job-1", 10)

    assert registry.cancel("job-1") is True
    assert "job-1" not in registry.list_active()
    assert registry.get("job-1").state == ProcessState.CANCELLED

    fake_clock.advance(600)
    assert registry.get("job-1") is None


def test_cancel_can_evict_immediately(fake_clock):
    registry = ProcessRegistry(600, retain_cancelled=False, clock=fake_clock)
    process = registry.create("job-1", 10)

    assert registry.cancel("job-1") is True
    assert registry.get("job-1") is None
    assert "job-1" not in registry.list_active()
    # the running task still holds the record; it must not come back
    process.advance(3)
    assert registry.get("job-1") is None


def test_cancel_unknown_returns_false(fake_clock):
    assert ProcessRegistry(600, clock=fake_clock).cancel("missing") is False


def test_completed_jobs_expire_after_retention(fake_clock):
    registry = ProcessRegistry(600, clock=fake_clock)
    registry.create("job-1", 1)
    registry.complete("job-1")

    fake_clock.advance(599)
    assert registry.get("job-1") is not None
    fake_clock.advance(1)
    assert registry.get("job-1") is None


def test_sweep_removes_only_expired(fake_clock):
    registry = ProcessRegistry(60, clock=fake_clock)
    registry.create("old", 1)
    registry.complete("old")
    fake_clock.advance(30)
    registry.create("recent", 1)
    registry.complete("recent")
    registry.create("running", 1)

    fake_clock.advance(30)
    assert registry.sweep() == 1
    assert set(registry.list_all()) == {"recent", "running"}


def test_expired_id_can_be_reused(fake_clock):
    registry = ProcessRegistry(60, clock=fake_clock)
    registry.create("job-1", 1)
    registry.complete("job-1")
    fake_clock.advance(61)

    assert registry.create("job-1", 2).total_records == 2


def test_list_active_is_a_snapshot(fake_clock):
    registry = ProcessRegistry(600, clock=fake_clock)
    process = registry.create("job-1", 10)
    snapshot = registry.list_active()

    process.advance(5)
    assert snapshot["job-1"].processed_count == 0
    assert snapshot["job-1"] is not process


def test_concurrent_jobs_do_not_interfere(fake_clock):
    registry = ProcessRegistry(600, clock=fake_clock)
    processes = [registry.create(f"job-{i}", 10_000) for i in range(4)]

    def work(process):
        for _ in range(1000):
            process.advance(1)

    threads = [threading.Thread(target=work, args=(p,)) for p in processes for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert [p.processed_count for p in processes] == [2000] * 4


def test_count_by_state(fake_clock):
    registry = ProcessRegistry(600, clock=fake_clock)
    registry.create("a", 1)
    registry.create("b", 1)
    registry.complete("b")
    registry.create("c", 1)
    registry.fail("c", "boom")

    counts = registry.count_by_state()
    assert counts == {"IN_PROGRESS": 1, "COMPLETED": 1, "ERROR": 1, "CANCELLED": 0}
