"""Repository layer for task persistence.

SQL repositories open one short session per call and commit it immediately:
side effects and row updates are deliberately not coupled in one transaction.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from itertools import count

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tasklane.composer import EmailTemplateParts
from tasklane.errors import PersistenceError
from tasklane.persistence.models import (
    EmailTemplateModel,
    ImmediateTaskModel,
    ImmediateTaskStatus,
    ScheduledTaskLogModel,
    ScheduledTaskModel,
)
from tasklane.persistence.protocols import DueTask


class _SQLRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to {action}: {exc}") from exc


class SQLImmediateTaskRepository(_SQLRepository):
    """Immediate task access used by the worker."""

    async def get_by_id(self, task_id: int) -> ImmediateTaskModel | None:
        async with self._session("get immediate task") as session:
            return await session.get(ImmediateTaskModel, task_id)

    async def update_status(self, task_id: int, status: ImmediateTaskStatus, error_message: str) -> None:
        stmt = (
            update(ImmediateTaskModel)
            .where(ImmediateTaskModel.id == task_id)
            .values(status=status, error=error_message)
        )
        async with self._session("update immediate task status") as session:
            await session.execute(stmt)


class SQLScheduledTaskRepository(_SQLRepository):
    """Scheduled task access used by the worker and the due-task scheduler."""

    async def get_by_id(self, task_id: int) -> ScheduledTaskModel | None:
        async with self._session("get scheduled task") as session:
            return await session.get(ScheduledTaskModel, task_id)

    async def update_url(self, task_id: int, url: str) -> None:
        stmt = update(ScheduledTaskModel).where(ScheduledTaskModel.id == task_id).values(url=url)
        async with self._session("update scheduled task url") as session:
            await session.execute(stmt)

    async def update_previous_and_next_run(self, task_id: int, previous_run: datetime, next_run: datetime) -> None:
        stmt = (
            update(ScheduledTaskModel)
            .where(ScheduledTaskModel.id == task_id)
            .values(previous_run=previous_run, next_run=next_run)
        )
        async with self._session("update scheduled task run times") as session:
            await session.execute(stmt)

    async def list_active_in_window(self, start: datetime, end: datetime | None = None) -> list[DueTask]:
        stmt = select(ScheduledTaskModel.id, ScheduledTaskModel.next_run).where(
            ScheduledTaskModel.active.is_(True),
            ScheduledTaskModel.next_run >= start,
        )
        if end is not None:
            stmt = stmt.where(ScheduledTaskModel.next_run <= end)
        async with self._session("list active scheduled tasks") as session:
            result = await session.execute(stmt.order_by(ScheduledTaskModel.next_run.asc()))
            return [DueTask(task_id=row.id, next_run=row.next_run) for row in result]


class SQLScheduledTaskLogRepository(_SQLRepository):
    """Append-only execution log."""

    async def create(self, entry: ScheduledTaskLogModel) -> ScheduledTaskLogModel:
        async with self._session("create scheduled task log") as session:
            session.add(entry)
            await session.flush()
            await session.refresh(entry)
        return entry


class SQLEmailTemplateRepository(_SQLRepository):
    """Read-only template access."""

    async def get_template_by_id(self, template_id: int) -> EmailTemplateParts | None:
        stmt = select(EmailTemplateModel).where(EmailTemplateModel.id == template_id)
        async with self._session("get email template") as session:
            template = await session.scalar(stmt)
            return None if template is None else template.to_parts()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryImmediateTaskRepository:
    """In-memory immediate task repository for tests and local runs."""

    def __init__(self) -> None:
        self._items: dict[int, ImmediateTaskModel] = {}
        self._ids = count(1)

    async def create(self, task: ImmediateTaskModel) -> ImmediateTaskModel:
        if task.id is None:
            task.id = next(self._ids)
        if task.status is None:
            task.status = ImmediateTaskStatus.PENDING
        if task.created_at is None:
            task.created_at = _utcnow()
        self._items[task.id] = task
        return task

    async def get_by_id(self, task_id: int) -> ImmediateTaskModel | None:
        return self._items.get(task_id)

    async def update_status(self, task_id: int, status: ImmediateTaskStatus, error_message: str) -> None:
        task = self._items.get(task_id)
        if task is None:
            return
        task.status = status
        task.error = error_message

    async def delete(self, task_id: int) -> None:
        self._items.pop(task_id, None)


class InMemoryScheduledTaskRepository:
    """In-memory scheduled task repository for tests and local runs."""

    def __init__(self) -> None:
        self._items: dict[int, ScheduledTaskModel] = {}
        self._ids = count(1)

    async def create(self, task: ScheduledTaskModel) -> ScheduledTaskModel:
        if task.id is None:
            task.id = next(self._ids)
        if task.active is None:
            task.active = True
        if task.created_at is None:
            task.created_at = _utcnow()
        self._items[task.id] = task
        return task

    async def get_by_id(self, task_id: int) -> ScheduledTaskModel | None:
        return self._items.get(task_id)

    async def update_url(self, task_id: int, url: str) -> None:
        task = self._items.get(task_id)
        if task is not None:
            task.url = url

    async def update_previous_and_next_run(self, task_id: int, previous_run: datetime, next_run: datetime) -> None:
        task = self._items.get(task_id)
        if task is not None:
            task.previous_run = previous_run
            task.next_run = next_run

    async def list_active_in_window(self, start: datetime, end: datetime | None = None) -> list[DueTask]:
        items = [
            item
            for item in self._items.values()
            if item.active and item.next_run >= start and (end is None or item.next_run <= end)
        ]
        return [DueTask(task_id=item.id, next_run=item.next_run) for item in sorted(items, key=lambda i: i.next_run)]

    async def delete(self, task_id: int) -> None:
        self._items.pop(task_id, None)


class InMemoryScheduledTaskLogRepository:
    """In-memory execution log repository for tests and local runs."""

    def __init__(self) -> None:
        self._items: list[ScheduledTaskLogModel] = []
        self._ids = count(1)

    async def create(self, entry: ScheduledTaskLogModel) -> ScheduledTaskLogModel:
        if entry.id is None:
            entry.id = next(self._ids)
        if entry.created_at is None:
            entry.created_at = _utcnow()
        self._items.append(entry)
        return entry

    def list_for_task(self, task_id: int) -> list[ScheduledTaskLogModel]:
        return [item for item in self._items if item.task_id == task_id]

    def all(self) -> list[ScheduledTaskLogModel]:
        return list(self._items)


class InMemoryEmailTemplateRepository:
    """In-memory template repository for tests and local runs."""

    def __init__(self) -> None:
        self._items: dict[int, EmailTemplateParts] = {}

    def add(self, template_id: int, parts: EmailTemplateParts) -> None:
        self._items[template_id] = parts

    async def get_template_by_id(self, template_id: int) -> EmailTemplateParts | None:
        return self._items.get(template_id)
