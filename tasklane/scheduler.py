"""Due-task scheduler: turns scheduled task rows into queue jobs."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from tasklane.clock import Clock, utcnow
from tasklane.persistence.protocols import DueTask, ScheduledTaskRepository
from tasklane.queue.jobs import enqueue_scheduled_task
from tasklane.queue.protocols import JobQueue

DEFAULT_POLL_INTERVAL = timedelta(seconds=10)
DEFAULT_HORIZON = timedelta(hours=24)
DEFAULT_RESTORE_GRACE = timedelta(minutes=1)


class DueTaskScheduler:
    """Keep a due set of active scheduled tasks and enqueue them when due.

    Every tick restores the due set from the database when it is empty,
    refreshes it with tasks firing within ``horizon``, and enqueues one
    ``scheduled:task`` job per member whose ``next_run`` has passed.
    """

    def __init__(
        self,
        repository: ScheduledTaskRepository,
        queue: JobQueue,
        *,
        logger: logging.Logger | None = None,
        clock: Clock = utcnow,
        poll_interval: timedelta = DEFAULT_POLL_INTERVAL,
        horizon: timedelta = DEFAULT_HORIZON,
        restore_grace: timedelta = DEFAULT_RESTORE_GRACE,
    ) -> None:
        if poll_interval <= timedelta(0):
            raise ValueError("poll_interval must be positive")
        self._repository = repository
        self._queue = queue
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._clock = clock
        self._poll_interval = poll_interval
        self._horizon = horizon
        self._restore_grace = restore_grace
        self._due: dict[int, datetime] = {}
        # next_run of the firing last enqueued per task, so a restore does not
        # enqueue the same firing twice before the worker reschedules it.
        self._enqueued: dict[int, datetime] = {}
        self._stopping = asyncio.Event()

    @property
    def due(self) -> dict[int, datetime]:
        """Snapshot of the due set (task id -> next run)."""
        return dict(self._due)

    async def run_once(self) -> list[int]:
        """Run one tick and return the ids that were enqueued."""
        now = self._clock()
        if not self._due:
            await self._restore(now)
        await self._populate(now)
        return await self._enqueue_due(now)

    async def run(self) -> None:
        """Tick every ``poll_interval`` until ``stop()`` is called."""
        self._stopping.clear()
        self._logger.info("Due-task scheduler started (poll every %ss)", self._poll_interval.total_seconds())
        while not self._stopping.is_set():
            try:
                await self.run_once()
            except Exception:
                self._logger.exception("Due-task scheduler tick failed")
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._poll_interval.total_seconds())
            except asyncio.TimeoutError:
                pass
        self._logger.info("Due-task scheduler stopped")

    def stop(self) -> None:
        self._stopping.set()

    async def _restore(self, now: datetime) -> None:
        try:
            tasks = await self._repository.list_active_in_window(now - self._restore_grace)
        except Exception:
            self._logger.exception("Failed to restore due set")
            return
        restored = self._add(tasks)
        if restored:
            self._logger.info("Restored %d scheduled task(s) into the due set", restored)

    async def _populate(self, now: datetime) -> None:
        try:
            tasks = await self._repository.list_active_in_window(now, now + self._horizon)
        except Exception:
            self._logger.exception("Failed to load upcoming scheduled tasks")
            return
        self._add(tasks)

    def _add(self, tasks: list[DueTask]) -> int:
        added = 0
        for task in tasks:
            if self._enqueued.get(task.task_id) == task.next_run:
                continue
            self._due[task.task_id] = task.next_run
            added += 1
        return added

    async def _enqueue_due(self, now: datetime) -> list[int]:
        enqueued: list[int] = []
        cutoff = now - self._restore_grace
        self._enqueued = {task_id: at for task_id, at in self._enqueued.items() if at >= cutoff}
        due_ids = sorted((task_id for task_id, at in self._due.items() if at <= now), key=self._due.__getitem__)
        for task_id in due_ids:
            try:
                job_id = await enqueue_scheduled_task(self._queue, task_id)
            except Exception:
                self._logger.exception("Failed to enqueue scheduled task %s", task_id)
                continue
            self._enqueued[task_id] = self._due.pop(task_id)
            enqueued.append(task_id)
            self._logger.info("Enqueued scheduled task %s as job %s", task_id, job_id)
        return enqueued
