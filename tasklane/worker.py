"""Job-type routing between brokers and task handlers."""

from __future__ import annotations

import logging

from tasklane.errors import UnknownJobTypeError
from tasklane.queue.models import Job, JobHandler, JobType


class Worker:
    """Registry mapping job types to handlers.

    Brokers call ``process`` for every delivered job; the worker itself holds
    no queue state and may be shared by every lane.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._handlers: dict[str, JobHandler] = {}
        self._logger = logger if logger is not None else logging.getLogger(__name__)

    @property
    def job_types(self) -> list[str]:
        return list(self._handlers)

    def register(self, job_type: str | JobType, handler: JobHandler) -> None:
        key = job_type.value if isinstance(job_type, JobType) else str(job_type).strip()
        if not key:
            raise ValueError("job_type must not be empty")
        if key in self._handlers:
            raise ValueError(f"handler already registered for job type {key!r}")
        self._handlers[key] = handler

    async def process(self, job: Job) -> None:
        handler = self._handlers.get(job.job_type)
        if handler is None:
            self._logger.error("No handler for job %s of type %s", job.job_id, job.job_type)
            raise UnknownJobTypeError(job.job_type)
        self._logger.debug(
            "Processing job %s (%s) attempt %d on lane %s", job.job_id, job.job_type, job.attempt, job.lane
        )
        await handler(job)


def build_worker(
    immediate_handler: JobHandler,
    scheduled_handler: JobHandler,
    *,
    logger: logging.Logger | None = None,
) -> Worker:
    """Create a worker routing both task job types."""
    worker = Worker(logger=logger)
    worker.register(JobType.IMMEDIATE_TASK, immediate_handler)
    worker.register(JobType.SCHEDULED_TASK, scheduled_handler)
    return worker
