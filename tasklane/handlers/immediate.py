"""Handler for one-shot ``immediate:task`` email jobs."""

from __future__ import annotations

import logging

from tasklane.composer import compose_from_content
from tasklane.errors import TaskValidationError, TemplateNotFoundError
from tasklane.mailer import Mailer
from tasklane.persistence.models import ImmediateTaskStatus
from tasklane.persistence.protocols import EmailTemplateRepository, ImmediateTaskRepository
from tasklane.queue.jobs import decode_task_id
from tasklane.queue.models import Job

TEMPLATE_REQUIRED_MESSAGE = "template_id is required"


class ImmediateTaskHandler:
    """Render and send the email of an immediate task, then record its outcome.

    The task moves from Pending to Completed on delivery, or to Failed with the
    error text when the template, content or mail transport fails. A task row
    that no longer exists is treated as cancelled.
    """

    def __init__(
        self,
        tasks: ImmediateTaskRepository,
        templates: EmailTemplateRepository,
        mailer: Mailer,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._tasks = tasks
        self._templates = templates
        self._mailer = mailer
        self._logger = logger if logger is not None else logging.getLogger(__name__)

    async def __call__(self, job: Job) -> None:
        await self.handle(job.payload)

    async def handle(self, payload: str | bytes) -> None:
        task_id = decode_task_id(payload)
        task = await self._tasks.get_by_id(task_id)
        if task is None:
            self._logger.info("Immediate task %s not found, skipping", task_id)
            return

        if task.template_id is None:
            await self._mark_failed(task_id, TEMPLATE_REQUIRED_MESSAGE)
            raise TaskValidationError(TEMPLATE_REQUIRED_MESSAGE)

        try:
            template = await self._templates.get_template_by_id(task.template_id)
            if template is None:
                raise TemplateNotFoundError(task.template_id)
            email = compose_from_content(template, task.content)
            await self._mailer.send(email.recipient, email.subject, email.body)
        except Exception as exc:
            await self._mark_failed(task_id, str(exc))
            raise

        await self._tasks.update_status(task_id, ImmediateTaskStatus.COMPLETED, "")
        self._logger.info("Immediate task %s completed, email sent to %s", task_id, email.recipient)

    async def _mark_failed(self, task_id: int, message: str) -> None:
        self._logger.warning("Immediate task %s failed: %s", task_id, message)
        try:
            await self._tasks.update_status(task_id, ImmediateTaskStatus.FAILED, message)
        except Exception:
            self._logger.exception("Failed to record failed status for immediate task %s", task_id)
