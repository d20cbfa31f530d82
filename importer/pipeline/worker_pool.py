"""
ImportWorkerPool — fixed number of asyncio workers draining a job queue.

Each submitted job is an async callable; submit() returns an asyncio
Future for its result straight away.  When every worker is busy, jobs
wait in the queue (bounded by max_queue; 0 means unbounded).

    pool = ImportWorkerPool(size=2)
    pool.start()
    future = pool.submit(lambda: orchestrator.run(...))
    ...
    await pool.shutdown(drain=True)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from importer.core.logging import get_logger
from importer.pipeline.errors import PoolClosedError, PoolSaturatedError

logger = get_logger(__name__)

JobFactory = Callable[[], Awaitable[Any]]
CancelHook = Callable[[], Any]


@dataclass
class _QueuedJob:
    name: str
    factory: JobFactory
    future: asyncio.Future
    on_cancel: CancelHook | None = None


class ImportWorkerPool:
    """Bounded asyncio task executor with a drain/shutdown hook."""

    def __init__(self, size: int = 2, max_queue: int = 0) -> None:
        if size < 1:
            raise ValueError("Worker pool size must be at least 1")
        self.size = size
        self.max_queue = max_queue
        self._queue: asyncio.Queue[_QueuedJob | None] | None = None
        self._workers: list[asyncio.Task] = []
        self._running = 0
        self._closed = False

    # ─── Lifecycle ─────────────────────────────────────

    def start(self) -> None:
        """Spawn the worker tasks on the running event loop."""
        if self._workers:
            return
        self._queue = asyncio.Queue()
        self._closed = False
        self._workers = [
            asyncio.create_task(self._worker(index, self._queue), name=f"import-worker-{index}")
            for index in range(1, self.size + 1)
        ]
        logger.info("Worker pool started", workers=self.size, max_queue=self.max_queue)

    async def shutdown(self, drain: bool = True, timeout: float | None = None) -> None:
        """
        Stop accepting work and stop the workers.

        drain=True lets queued and running jobs finish (up to `timeout`
        seconds); anything left after that, or everything when
        drain=False, is cancelled.
        """
        if self._queue is None:
            return
        self._closed = True

        if drain:
            for _ in self._workers:
                # sentinels go after any queued jobs
                self._queue.put_nowait(None)
            _, pending = await asyncio.wait(self._workers, timeout=timeout)
        else:
            self._cancel_pending()
            pending = set(self._workers)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            self._cancel_pending()

        logger.info(
            "Worker pool stopped",
            drained=drain,
            cancelled_workers=len(pending),
        )
        self._workers = []
        self._queue = None

    # ─── Submission ────────────────────────────────────

    def submit(
        self,
        factory: JobFactory,
        name: str = "import",
        on_cancel: CancelHook | None = None,
    ) -> asyncio.Future:
        """
        Queue a job and return a Future for its result.

        `on_cancel` runs if the job is dropped from the queue at shutdown
        without ever starting.

        Raises:
            PoolClosedError: the pool is not started or is shutting down.
            PoolSaturatedError: the queue is full.
        """
        if self._closed or self._queue is None:
            raise PoolClosedError("Worker pool is not accepting new jobs")

        if self.max_queue and self._queue.qsize() >= self.max_queue:
            raise PoolSaturatedError(
                f"Import queue is full ({self.max_queue} jobs waiting)",
                details={"max_queue": self.max_queue},
            )

        future = asyncio.get_running_loop().create_future()
        job = _QueuedJob(name=name, factory=factory, future=future, on_cancel=on_cancel)
        self._queue.put_nowait(job)
        logger.debug("Job queued", job=name, pending=self.pending)
        return future

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    @property
    def running(self) -> int:
        return self._running

    @property
    def accepting(self) -> bool:
        return self._queue is not None and not self._closed

    # ─── Internals ─────────────────────────────────────

    async def _worker(self, index: int, queue: asyncio.Queue[_QueuedJob | None]) -> None:
        while True:
            job = await queue.get()
            try:
                if job is None:
                    return
                if job.future.cancelled():
                    continue
                self._running += 1
                try:
                    value = await job.factory()
                except asyncio.CancelledError:
                    job.future.cancel()
                    raise
                except Exception as exc:
                    logger.exception("Job failed in worker", job=job.name, worker=index)
                    if not job.future.done():
                        job.future.set_exception(exc)
                else:
                    if not job.future.done():
                        job.future.set_result(value)
                finally:
                    self._running -= 1
            finally:
                queue.task_done()

    def _cancel_pending(self) -> None:
        if self._queue is None:
            return
        while True:
            try:
                job = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            if job is None or job.future.done():
                continue
            job.future.cancel()
            if job.on_cancel is not None:
                job.on_cancel()
            logger.info("Queued job dropped", job=job.name)
