"""Unit tests for in-memory and SQL repositories."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from tasklane.composer import EmailTemplateParts
from tasklane.errors import PersistenceError
from tasklane.persistence import (
    EmailTemplateModel,
    ImmediateTaskModel,
    ImmediateTaskStatus,
    InMemoryEmailTemplateRepository,
    ScheduledTaskLogModel,
    ScheduledTaskLogStatus,
    ScheduledTaskModel,
    SQLEmailTemplateRepository,
    SQLImmediateTaskRepository,
    SQLScheduledTaskRepository,
)

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class _FakeSession:
    """Just enough of AsyncSession for repository calls."""

    def __init__(self, *, get_result=None, scalar_result=None, rows=(), error: Exception | None = None) -> None:
        self.get_result = get_result
        self.scalar_result = scalar_result
        self.rows = list(rows)
        self.error = error
        self.statements: list[object] = []

    async def __aenter__(self) -> _FakeSession:
        return self

    async def __aexit__(self, *exc_info: object) -> bool:
        return False

    def begin(self) -> _FakeSession:
        return self

    async def get(self, model: type, ident: int):  # type: ignore[no-untyped-def]
        return self.get_result

    async def scalar(self, stmt: object):  # type: ignore[no-untyped-def]
        return self.scalar_result

    async def execute(self, stmt: object):  # type: ignore[no-untyped-def]
        self.statements.append(stmt)
        if self.error is not None:
            raise self.error
        return self.rows


@pytest.mark.asyncio
async def test_in_memory_immediate_create_sets_defaults(immediate_tasks) -> None:
    task = await immediate_tasks.create(ImmediateTaskModel(user_id=1, template_id=1, content="a@b.com"))
    assert task.id == 1
    assert task.status is ImmediateTaskStatus.PENDING
    assert task.created_at is not None


@pytest.mark.asyncio
async def test_in_memory_immediate_completed_twice_stays_completed(immediate_tasks) -> None:
    task = await immediate_tasks.create(ImmediateTaskModel(user_id=1, template_id=1, content="a@b.com"))
    await immediate_tasks.update_status(task.id, ImmediateTaskStatus.COMPLETED, "")
    await immediate_tasks.update_status(task.id, ImmediateTaskStatus.COMPLETED, "")
    stored = await immediate_tasks.get_by_id(task.id)
    assert stored.status is ImmediateTaskStatus.COMPLETED
    assert stored.status.is_terminal


@pytest.mark.asyncio
async def test_in_memory_missing_rows_return_none(immediate_tasks, scheduled_tasks) -> None:
    assert await immediate_tasks.get_by_id(1) is None
    assert await scheduled_tasks.get_by_id(1) is None
    await immediate_tasks.update_status(1, ImmediateTaskStatus.FAILED, "x")
    await scheduled_tasks.update_url(1, "completed:x")


@pytest.mark.asyncio
async def test_in_memory_active_window_bounds_and_order(scheduled_tasks) -> None:
    late = await scheduled_tasks.create(ScheduledTaskModel(cron="* * * * *", content="", next_run=T0 + timedelta(hours=1)))
    early = await scheduled_tasks.create(ScheduledTaskModel(cron="* * * * *", content="", next_run=T0))
    await scheduled_tasks.create(ScheduledTaskModel(cron="* * * * *", content="", next_run=T0, active=False))
    await scheduled_tasks.create(ScheduledTaskModel(cron="* * * * *", content="", next_run=T0 - timedelta(seconds=1)))

    window = await scheduled_tasks.list_active_in_window(T0, T0 + timedelta(hours=1))
    assert [item.task_id for item in window] == [early.id, late.id]
    open_ended = await scheduled_tasks.list_active_in_window(T0 + timedelta(minutes=1))
    assert [item.task_id for item in open_ended] == [late.id]


@pytest.mark.asyncio
async def test_in_memory_run_time_update(scheduled_tasks) -> None:
    task = await scheduled_tasks.create(ScheduledTaskModel(cron="0 0 * * *", content="", next_run=T0))
    await scheduled_tasks.update_previous_and_next_run(task.id, T0, T0 + timedelta(days=1))
    assert (task.previous_run, task.next_run) == (T0, T0 + timedelta(days=1))


@pytest.mark.asyncio
async def test_in_memory_log_repository_is_append_only(task_logs) -> None:
    for job_id in ("a", "b"):
        await task_logs.create(
            ScheduledTaskLogModel(task_id=1, job_id=job_id, status=ScheduledTaskLogStatus.COMPLETED, http_status=200)
        )
    assert [row.id for row in task_logs.all()] == [1, 2]
    assert [row.job_id for row in task_logs.list_for_task(1)] == ["a", "b"]
    assert task_logs.list_for_task(2) == []


@pytest.mark.asyncio
async def test_in_memory_templates() -> None:
    repo = InMemoryEmailTemplateRepository()
    parts = EmailTemplateParts(subject_template="s", body_template="b")
    repo.add(3, parts)
    assert await repo.get_template_by_id(3) == parts
    assert await repo.get_template_by_id(4) is None


@pytest.mark.asyncio
async def test_sql_get_by_id_returns_row() -> None:
    row = ImmediateTaskModel(id=5, user_id=1, template_id=1, content="a@b.com")
    repo = SQLImmediateTaskRepository(MagicMock(return_value=_FakeSession(get_result=row)))
    assert await repo.get_by_id(5) is row


@pytest.mark.asyncio
async def test_sql_update_status_issues_update() -> None:
    session = _FakeSession()
    repo = SQLImmediateTaskRepository(MagicMock(return_value=session))
    await repo.update_status(5, ImmediateTaskStatus.FAILED, "boom")
    [stmt] = session.statements
    assert stmt.table.name == "immediate_tasks"


@pytest.mark.asyncio
async def test_sql_errors_are_wrapped() -> None:
    error = OperationalError("UPDATE scheduled_tasks", {}, Exception("connection lost"))
    repo = SQLScheduledTaskRepository(MagicMock(return_value=_FakeSession(error=error)))
    with pytest.raises(PersistenceError, match="failed to update scheduled task url"):
        await repo.update_url(5, "completed:http://x")


@pytest.mark.asyncio
async def test_sql_list_active_in_window_maps_rows() -> None:
    rows = [SimpleNamespace(id=2, next_run=T0)]
    repo = SQLScheduledTaskRepository(MagicMock(return_value=_FakeSession(rows=rows)))
    [due] = await repo.list_active_in_window(T0 - timedelta(minutes=1), T0 + timedelta(hours=24))
    assert (due.task_id, due.next_run) == (2, T0)


@pytest.mark.asyncio
async def test_sql_template_lookup_converts_to_parts() -> None:
    model = EmailTemplateModel(id=1, slug="welcome", subject_template="Hi", body_template="Hello {{1}}")
    repo = SQLEmailTemplateRepository(MagicMock(return_value=_FakeSession(scalar_result=model)))
    assert await repo.get_template_by_id(1) == EmailTemplateParts(subject_template="Hi", body_template="Hello {{1}}")
    missing = SQLEmailTemplateRepository(MagicMock(return_value=_FakeSession()))
    assert await missing.get_template_by_id(2) is None

