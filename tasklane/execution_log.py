"""Best-effort writer for scheduled task execution logs."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from tasklane.persistence.models import ScheduledTaskLogModel, ScheduledTaskLogStatus
from tasklane.persistence.protocols import ScheduledTaskLogRepository


class ExecutionLogSink:
    """Write execution log rows without letting failures affect the handler.

    By default each row is written by a background task; ``drain()`` waits for
    outstanding writes. With ``background=False`` rows are written inline,
    still swallowing and logging repository failures.
    """

    def __init__(
        self,
        repository: ScheduledTaskLogRepository,
        *,
        background: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self._repository = repository
        self._background = background
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._pending: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def record(
        self,
        *,
        task_id: int,
        job_id: str,
        status: ScheduledTaskLogStatus,
        http_status: int,
        error: str = "",
    ) -> None:
        entry = ScheduledTaskLogModel(
            task_id=task_id,
            job_id=job_id,
            status=status,
            http_status=http_status,
            error=error,
        )
        if not self._background:
            await self._write(entry)
            return
        task = asyncio.create_task(self._write(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every background write scheduled so far on the running loop."""
        loop = asyncio.get_running_loop()
        while True:
            pending = [task for task in self._pending if task.get_loop() is loop]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def _write(self, entry: ScheduledTaskLogModel) -> None:
        try:
            await self._repository.create(entry)
        except Exception:
            self._logger.exception(
                "Failed to write execution log for task %s (job %s, status %s)",
                entry.task_id,
                entry.job_id,
                entry.status.value,
            )
