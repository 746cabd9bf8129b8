"""Handler for cron-recurring ``scheduled:task`` jobs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from tasklane.clock import Clock, utcnow
from tasklane.composer import compose_from_content
from tasklane.cron import next_run
from tasklane.errors import TemplateNotFoundError, WebhookError, WebhookTransportError
from tasklane.execution_log import ExecutionLogSink
from tasklane.mailer import Mailer
from tasklane.persistence.models import ScheduledTaskLogStatus, ScheduledTaskModel
from tasklane.persistence.protocols import EmailTemplateRepository, ScheduledTaskRepository
from tasklane.queue.jobs import decode_task_id
from tasklane.queue.models import Job
from tasklane.webhook import TRANSPORT_ERROR_STATUS, WebhookClient, build_target, is_completed, mark_completed

SUCCESS_HTTP_STATUS = 200
# Failures without an HTTP response of their own are logged with this status.
FAILURE_HTTP_STATUS = TRANSPORT_ERROR_STATUS
CANCELLED_ERROR = "execution cancelled before completion"


class ScheduledTaskHandler:
    """Run one firing of a scheduled task.

    A firing calls the task webhook at most until it first succeeds (the URL is
    then prefixed with ``completed:``), sends the templated email when a
    template is set, and writes exactly one execution log row. Whatever the
    outcome, ``previous_run``/``next_run`` are advanced from the instant the
    firing started.
    """

    def __init__(
        self,
        tasks: ScheduledTaskRepository,
        templates: EmailTemplateRepository,
        mailer: Mailer,
        log_sink: ExecutionLogSink,
        webhook_client: WebhookClient,
        *,
        clock: Clock = utcnow,
        logger: logging.Logger | None = None,
    ) -> None:
        self._tasks = tasks
        self._templates = templates
        self._mailer = mailer
        self._log_sink = log_sink
        self._webhook_client = webhook_client
        self._clock = clock
        self._logger = logger if logger is not None else logging.getLogger(__name__)

    async def __call__(self, job: Job) -> None:
        await self.handle(job.payload, job.job_id)

    async def handle(self, payload: str | bytes, job_id: str) -> None:
        task_id = decode_task_id(payload)
        now = self._clock()
        task = await self._tasks.get_by_id(task_id)
        if task is None:
            self._logger.info("Scheduled task %s not found, skipping", task_id)
            return

        async with self._reschedule(task, now):
            try:
                await self._call_webhook(task)
                await self._send_email(task)
            except WebhookTransportError as exc:
                await self._record(task.id, job_id, ScheduledTaskLogStatus.FAILED, exc.http_status, str(exc))
                raise
            except WebhookError as exc:
                await self._record(task.id, job_id, ScheduledTaskLogStatus.FAILED, exc.http_status, exc.body)
                raise
            except Exception as exc:
                await self._record(task.id, job_id, ScheduledTaskLogStatus.FAILED, FAILURE_HTTP_STATUS, str(exc))
                raise
            except asyncio.CancelledError:
                await self._record(task.id, job_id, ScheduledTaskLogStatus.FAILED, FAILURE_HTTP_STATUS, CANCELLED_ERROR)
                raise
            await self._record(task.id, job_id, ScheduledTaskLogStatus.COMPLETED, SUCCESS_HTTP_STATUS, "")

    async def _call_webhook(self, task: ScheduledTaskModel) -> None:
        if not task.url or is_completed(task.url):
            return
        target = build_target(task.url, task.user_id)
        response = await self._webhook_client.get(target)
        self._logger.info("Webhook for scheduled task %s returned %s", task.id, response.status_code)
        if response.status_code == SUCCESS_HTTP_STATUS:
            await self._tasks.update_url(task.id, mark_completed(task.url))

    async def _send_email(self, task: ScheduledTaskModel) -> None:
        if task.template_id is None:
            return
        template = await self._templates.get_template_by_id(task.template_id)
        if template is None:
            raise TemplateNotFoundError(task.template_id)
        email = compose_from_content(template, task.content)
        await self._mailer.send(email.recipient, email.subject, email.body)
        self._logger.info("Scheduled task %s sent email to %s", task.id, email.recipient)

    async def _record(
        self,
        task_id: int,
        job_id: str,
        status: ScheduledTaskLogStatus,
        http_status: int,
        error: str,
    ) -> None:
        if status is ScheduledTaskLogStatus.FAILED:
            self._logger.warning("Scheduled task %s failed (%s): %s", task_id, http_status, error)
        await self._log_sink.record(
            task_id=task_id,
            job_id=job_id,
            status=status,
            http_status=http_status,
            error=error,
        )

    @asynccontextmanager
    async def _reschedule(self, task: ScheduledTaskModel, now: datetime) -> AsyncIterator[None]:
        """Advance the schedule on every exit path.

        After a failed firing a reschedule error is logged and the firing error
        propagates; after a successful one it is raised. Cancellation, such as a
        job timeout, counts as a failed firing and is re-raised.
        """
        try:
            yield
        except (Exception, asyncio.CancelledError):
            try:
                await self._advance(task, now)
            except Exception:
                self._logger.exception("Failed to reschedule scheduled task %s", task.id)
            raise
        await self._advance(task, now)

    async def _advance(self, task: ScheduledTaskModel, now: datetime) -> None:
        upcoming = next_run(task.cron, now)
        await self._tasks.update_previous_and_next_run(task.id, now, upcoming)
        self._logger.debug("Scheduled task %s next run at %s", task.id, upcoming.isoformat())
