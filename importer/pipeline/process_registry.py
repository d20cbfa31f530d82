"""
ProcessRegistry — live state of every import job, keyed by job id.

Owned by the ImportService (one registry per service instance).  The
owning job is the only writer of its progress counters; cancellation is
the one external writer and goes through compare-and-transition, so it
can never move a job out of a terminal state and a late progress update
can never bring a finished job back.

Terminal jobs stay readable for ``retention_seconds`` after they finish.
Expiry is evaluated lazily on read and by sweep(); nothing schedules a
timer per job.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from importer.core.constants import TERMINAL_STATES, ProcessState
from importer.core.logging import get_logger
from importer.db.models.base import utcnow
from importer.pipeline.errors import DuplicateProcessError

logger = get_logger(__name__)

Clock = Callable[[], datetime]


@dataclass
class ImportProcess:
    """Lifecycle record of one import job."""

    id: str
    total_records: int
    entity_type: str = ""
    file_name: str = ""
    processed_count: int = 0
    detailed_progress: int = 0
    state: ProcessState = ProcessState.IN_PROGRESS
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    error_message: str | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def progress_percentage(self) -> float:
        if self.total_records <= 0:
            return 100.0 if self.state == ProcessState.COMPLETED else 0.0
        return min(100.0, self.processed_count / self.total_records * 100.0)

    # ─── Progress (owning job only) ───────────────────

    def advance(self, count: int) -> bool:
        """Add rows to processed_count.  Ignored once the job is terminal."""
        with self._lock:
            if self.is_terminal or count <= 0:
                return False
            self.processed_count = min(self.total_records, self.processed_count + count)
            return True

    def touch(self, row_index: int) -> bool:
        """Record the absolute index of the last row handled."""
        with self._lock:
            if self.is_terminal:
                return False
            self.detailed_progress = max(self.detailed_progress, row_index)
            return True

    # ─── State transitions ─────────────────────────────

    def transition(
        self,
        target: ProcessState,
        *,
        at: datetime,
        expected: ProcessState = ProcessState.IN_PROGRESS,
        error_message: str | None = None,
    ) -> bool:
        """Move expected → target atomically.  Returns False if state was not `expected`."""
        with self._lock:
            if self.state != expected:
                return False
            self.state = target
            if target in TERMINAL_STATES:
                self.finished_at = at
            if error_message is not None:
                self.error_message = error_message
            return True

    def expired(self, now: datetime, retention: timedelta) -> bool:
        with self._lock:
            return self.finished_at is not None and self.finished_at + retention <= now

    def snapshot(self) -> ImportProcess:
        """Detached copy, safe to hand to callers."""
        with self._lock:
            clone = copy.copy(self)
        clone._lock = threading.Lock()
        return clone

    def to_dict(self) -> dict[str, Any]:
        """Serialise for API responses."""
        with self._lock:
            return {
                "id": self.id,
                "entity_type": self.entity_type,
                "file_name": self.file_name,
                "state": self.state.value,
                "total_records": self.total_records,
                "processed_count": self.processed_count,
                "detailed_progress": self.detailed_progress,
                "progress_percentage": round(self.progress_percentage, 2),
                "started_at": self.started_at.isoformat(),
                "finished_at": self.finished_at.isoformat() if self.finished_at else None,
                "error_message": self.error_message,
            }


class ProcessRegistry:
    """
    Thread-safe job id → ImportProcess map with retention-based expiry.

    Args:
        retention_seconds: how long a terminal job stays readable.
        retain_cancelled: when False, cancel() evicts the job immediately
                          instead of giving it the retention window.
        clock: source of "now"; tests pass a fake.
    """

    def __init__(
        self,
        retention_seconds: float = 600,
        *,
        retain_cancelled: bool = True,
        clock: Clock = utcnow,
    ) -> None:
        self.retention = timedelta(seconds=retention_seconds)
        self.retain_cancelled = retain_cancelled
        self.clock = clock
        self._lock = threading.Lock()
        self._processes: dict[str, ImportProcess] = {}

    def create(
        self,
        process_id: str,
        total: int,
        *,
        entity_type: str = "",
        file_name: str = "",
    ) -> ImportProcess:
        """Register a new IN_PROGRESS job.  Raises DuplicateProcessError if the id is live."""
        now = self.clock()
        with self._lock:
            existing = self._processes.get(process_id)
            if existing is not None and not existing.expired(now, self.retention):
                raise DuplicateProcessError(
                    f"An import with id '{process_id}' already exists",
                    job_id=process_id,
                )
            process = ImportProcess(
                id=process_id,
                total_records=total,
                entity_type=entity_type,
                file_name=file_name,
                started_at=now,
            )
            self._processes[process_id] = process

        logger.info(
            "Process registered",
            job_id=process_id,
            total_records=total,
            entity_type=entity_type,
        )
        return process

    def get(self, process_id: str) -> ImportProcess | None:
        """Live record for the id, or None when unknown or expired."""
        now = self.clock()
        with self._lock:
            process = self._processes.get(process_id)
            if process is None:
                return None
            if process.expired(now, self.retention):
                del self._processes[process_id]
                logger.debug("Process expired on read", job_id=process_id)
                return None
            return process

    def list_active(self) -> dict[str, ImportProcess]:
        """Snapshot of jobs still IN_PROGRESS."""
        with self._lock:
            live = list(self._processes.items())
        return {pid: p.snapshot() for pid, p in live if not p.is_terminal}

    def list_all(self) -> dict[str, ImportProcess]:
        """Snapshot of every retained job, terminal ones included."""
        now = self.clock()
        with self._lock:
            live = list(self._processes.items())
        return {pid: p.snapshot() for pid, p in live if not p.expired(now, self.retention)}

    def complete(self, process_id: str) -> bool:
        process = self.get(process_id)
        return process is not None and process.transition(ProcessState.COMPLETED, at=self.clock())

    def fail(self, process_id: str, message: str) -> bool:
        process = self.get(process_id)
        return process is not None and process.transition(
            ProcessState.ERROR, at=self.clock(), error_message=message
        )

    def cancel(self, process_id: str) -> bool:
        """
        Mark a running job CANCELLED.

        Returns True only when the job existed and was not yet terminal.
        """
        process = self.get(process_id)
        if process is None:
            return False
        if not process.transition(ProcessState.CANCELLED, at=self.clock()):
            return False

        if not self.retain_cancelled:
            self.remove(process_id)
        logger.info("Process cancelled", job_id=process_id, retained=self.retain_cancelled)
        return True

    def remove(self, process_id: str) -> bool:
        with self._lock:
            return self._processes.pop(process_id, None) is not None

    def sweep(self) -> int:
        """Drop every expired terminal job.  Returns how many were removed."""
        now = self.clock()
        with self._lock:
            expired = [pid for pid, p in self._processes.items() if p.expired(now, self.retention)]
            for pid in expired:
                del self._processes[pid]
        if expired:
            logger.info("Expired processes swept", count=len(expired))
        return len(expired)

    def count_by_state(self) -> dict[str, int]:
        counts = {state.value: 0 for state in ProcessState}
        for process in self.list_all().values():
            counts[process.state.value] += 1
        return counts

    def __len__(self) -> int:
        with self._lock:
            return len(self._processes)
