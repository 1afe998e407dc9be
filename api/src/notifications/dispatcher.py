"""Fire-and-forget side-effect dispatcher.

Notifications and emails are queued after the state change they describe
has been committed. A background worker runs them one at a time:

- ``dispatch`` never blocks and never raises (drop + log on queue full)
- a failing job is logged with its traceback and skipped
- jobs log under the request and user that queued them
- ``stop`` runs whatever is still queued before returning
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from src.core.context import RequestContext, get_request_id, get_user_id


logger = structlog.get_logger(__name__)

SideEffect = Callable[[], Awaitable[Any]]


@dataclass
class _Job:
    name: str
    run: SideEffect
    context: dict[str, Any] = field(default_factory=dict)
    request_id: str = ""
    user_id: str | None = None


class SideEffectDispatcher:
    """Bounded queue of side effects processed by a background task."""

    def __init__(self, queue_size: int = 1000, poll_interval: float = 1.0) -> None:
        """Initialize dispatcher.

        Args:
            queue_size: Maximum pending jobs (new jobs dropped when full)
            poll_interval: Seconds the worker waits before re-checking shutdown
        """
        self.queue_size = queue_size
        self.poll_interval = poll_interval

        self._queue: asyncio.Queue[_Job] = asyncio.Queue(maxsize=queue_size)
        self._running = False
        self._worker_task: asyncio.Task | None = None
        self._start_time: float = 0.0

        self._jobs_dispatched = 0
        self._jobs_dropped = 0
        self._jobs_completed = 0
        self._jobs_failed = 0

    def dispatch(self, name: str, run: SideEffect, **context: Any) -> bool:
        """Queue a side effect.

        Args:
            name: Job name used in logs
            run: Zero-argument coroutine factory
            **context: Extra fields logged if the job fails

        Returns:
            True if queued, False if dropped
        """
        try:
            self._queue.put_nowait(
                _Job(
                    name=name,
                    run=run,
                    context=context,
                    request_id=get_request_id(),
                    user_id=get_user_id(),
                )
            )
        except asyncio.QueueFull:
            self._jobs_dropped += 1
            logger.warning(
                "side_effect_queue_full",
                job=name,
                queue_size=self.queue_size,
                dropped_total=self._jobs_dropped,
            )
            return False
        self._jobs_dispatched += 1
        return True

    async def _run_job(self, job: _Job) -> None:
        with RequestContext(request_id=job.request_id, user_id=job.user_id, job=job.name):
            try:
                await job.run()
            except Exception:
                self._jobs_failed += 1
                logger.exception("side_effect_failed", **job.context)
            else:
                self._jobs_completed += 1

    # ==========================================================================
    # Background Worker
    # ==========================================================================

    async def start(self) -> None:
        """Start the background worker."""
        if self._running:
            logger.warning("side_effect_dispatcher_already_running")
            return

        self._running = True
        self._start_time = time.monotonic()
        self._worker_task = asyncio.create_task(
            self._worker_loop(),
            name="side_effect_worker",
        )
        logger.info("side_effect_dispatcher_started", queue_size=self.queue_size)

    async def stop(self) -> None:
        """Stop the worker and run the jobs still queued."""
        if not self._running:
            return

        self._running = False

        if self._worker_task:
            try:
                await asyncio.wait_for(self._worker_task, timeout=5.0)
            except TimeoutError:
                logger.warning("side_effect_worker_stop_timeout")
                self._worker_task.cancel()

        await self.drain()

        logger.info("side_effect_dispatcher_stopped", **self.get_stats())

    async def drain(self) -> int:
        """Run every queued job now. Returns how many ran."""
        ran = 0
        while not self._queue.empty():
            try:
                job = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            await self._run_job(job)
            ran += 1
        return ran

    async def _worker_loop(self) -> None:
        while self._running:
            try:
                job = await asyncio.wait_for(
                    self._queue.get(),
                    timeout=self.poll_interval,
                )
            except TimeoutError:
                continue
            await self._run_job(job)

    # ==========================================================================
    # Status/Monitoring
    # ==========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def queue_length(self) -> int:
        return self._queue.qsize()

    def get_stats(self) -> dict[str, Any]:
        """Get dispatcher statistics for monitoring."""
        return {
            "running": self._running,
            "queue_length": self._queue.qsize(),
            "jobs_dispatched": self._jobs_dispatched,
            "jobs_completed": self._jobs_completed,
            "jobs_failed": self._jobs_failed,
            "jobs_dropped": self._jobs_dropped,
            "uptime_seconds": (
                time.monotonic() - self._start_time if self._running else 0.0
            ),
        }
