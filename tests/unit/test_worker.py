"""Unit tests for job routing and an end-to-end in-memory run."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from tasklane.errors import UnknownJobTypeError
from tasklane.execution_log import ExecutionLogSink
from tasklane.handlers import ImmediateTaskHandler, ScheduledTaskHandler
from tasklane.persistence import ImmediateTaskModel, ImmediateTaskStatus, ScheduledTaskModel
from tasklane.queue import InMemoryBroker, Job, JobType, enqueue_immediate_task, enqueue_scheduled_task
from tasklane.webhook import WebhookClient
from tasklane.worker import Worker, build_worker


@pytest.mark.asyncio
async def test_worker_routes_by_job_type() -> None:
    worker = Worker()
    immediate = AsyncMock()
    scheduled = AsyncMock()
    worker.register(JobType.IMMEDIATE_TASK, immediate)
    worker.register("scheduled:task", scheduled)

    job = Job(job_id="j-1", job_type="scheduled:task", payload="3")
    await worker.process(job)

    scheduled.assert_awaited_once_with(job)
    immediate.assert_not_awaited()
    assert worker.job_types == ["immediate:task", "scheduled:task"]


@pytest.mark.asyncio
async def test_worker_rejects_unknown_job_type() -> None:
    worker = Worker()
    with pytest.raises(UnknownJobTypeError):
        await worker.process(Job(job_id="j-1", job_type="email:digest", payload="3"))


def test_worker_rejects_duplicate_registration() -> None:
    worker = Worker()
    worker.register("immediate:task", AsyncMock())
    with pytest.raises(ValueError, match="already registered"):
        worker.register("immediate:task", AsyncMock())


def test_build_worker_registers_both_task_types() -> None:
    worker = build_worker(AsyncMock(), AsyncMock())
    assert sorted(worker.job_types) == ["immediate:task", "scheduled:task"]


@pytest.mark.asyncio
async def test_end_to_end_through_memory_broker(
    immediate_tasks, scheduled_tasks, task_logs, templates, mailer, clock
) -> None:
    immediate_task = await immediate_tasks.create(
        ImmediateTaskModel(user_id=1, template_id=1, content="a@b.com;Alice;42")
    )
    scheduled_task = await scheduled_tasks.create(
        ScheduledTaskModel(
            cron="0 0 * * *",
            url="http://x/drop/5",
            content="",
            next_run=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        )
    )
    sink = ExecutionLogSink(task_logs)
    webhook = WebhookClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, text="ok")))
    worker = build_worker(
        ImmediateTaskHandler(immediate_tasks, templates, mailer),
        ScheduledTaskHandler(scheduled_tasks, templates, mailer, sink, webhook, clock=clock),
    )
    broker = InMemoryBroker(retry_delay_seconds=0)
    broker.start(worker.process)

    await enqueue_immediate_task(broker, immediate_task.id)
    scheduled_job_id = await enqueue_scheduled_task(broker, scheduled_task.id)
    await broker.join()
    await broker.stop()
    await sink.drain()

    assert immediate_task.status is ImmediateTaskStatus.COMPLETED
    assert [m.body for m in mailer.sent] == ["Hi Alice, code 42"]
    assert scheduled_task.url == "completed:http://x/drop/5"
    assert [row.job_id for row in task_logs.list_for_task(scheduled_task.id)] == [scheduled_job_id]
    assert broker.get_dead_letters() == []
