"""
Background task queue - asyncio worker pool for fire-and-forget jobs.

Jobs are submitted as coroutine factories and run by a fixed number of
workers on the service's event loop. Every job is logged on completion or
failure and counted, so side effects that the request path does not wait
for still leave a trace.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

from prometheus_client import CollectorRegistry, Counter

logger = logging.getLogger(__name__)

registry = CollectorRegistry()

TASKS_TOTAL = Counter(
    "background_tasks_total",
    "Background tasks finished, by outcome",
    ["queue", "outcome"],
    registry=registry,
)

Job = Callable[[], Awaitable[object]]


class BackgroundTaskQueue:
    """Fixed-size asyncio worker pool."""

    def __init__(self, name: str = "background", workers: int = 4):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.name = name
        self.workers = workers
        self._queue: Optional[asyncio.Queue] = None
        self._worker_tasks: List[asyncio.Task] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.completed = 0
        self.failed = 0

    @property
    def started(self) -> bool:
        return bool(self._worker_tasks)

    def _bound_to_running_loop(self) -> bool:
        return self.started and self._loop is asyncio.get_running_loop()

    def start(self) -> None:
        """Spawn the workers on the running event loop (idempotent)."""
        if self._bound_to_running_loop():
            return
        # Workers belong to the loop that started them; a new loop gets new workers
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._worker_tasks = [
            asyncio.create_task(self._worker(self._queue), name=f"{self.name}-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info("Task queue '%s' started with %d workers", self.name, self.workers)

    def submit(self, label: str, job: Job) -> None:
        """Queue a job; starts the workers lazily on first use."""
        self.start()
        self._queue.put_nowait((label, job))
        logger.debug("Queued task '%s' on '%s'", label, self.name)

    async def join(self) -> None:
        """Wait until every queued job has finished."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """Cancel the workers; jobs still queued are dropped."""
        if self._bound_to_running_loop():
            for task in self._worker_tasks:
                task.cancel()
            await asyncio.gather(*self._worker_tasks, return_exceptions=True)
        self._worker_tasks = []
        self._queue = None
        self._loop = None
        logger.info("Task queue '%s' stopped", self.name)

    async def _worker(self, queue: asyncio.Queue) -> None:
        while True:
            label, job = await queue.get()
            await self._run(label, job)
            queue.task_done()

    async def _run(self, label: str, job: Job) -> None:
        start = time.time()
        try:
            await job()
        except asyncio.CancelledError:
            raise
        except Exception:
            self.failed += 1
            TASKS_TOTAL.labels(queue=self.name, outcome="failed").inc()
            logger.exception(
                "Task '%s' on '%s' failed after %.3fs", label, self.name, time.time() - start
            )
            return
        self.completed += 1
        TASKS_TOTAL.labels(queue=self.name, outcome="completed").inc()
        logger.info("Task '%s' on '%s' done in %.3fs", label, self.name, time.time() - start)
