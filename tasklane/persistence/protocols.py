"""Repository interfaces consumed by handlers and the due-task scheduler."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from tasklane.composer import EmailTemplateParts
from tasklane.persistence.models import (
    ImmediateTaskModel,
    ImmediateTaskStatus,
    ScheduledTaskLogModel,
    ScheduledTaskModel,
)


@dataclass(frozen=True, slots=True)
class DueTask:
    """Scheduler view of a scheduled task: id and next fire time."""

    task_id: int
    next_run: datetime


class ImmediateTaskRepository(Protocol):
    async def get_by_id(self, task_id: int) -> ImmediateTaskModel | None: ...

    async def update_status(self, task_id: int, status: ImmediateTaskStatus, error_message: str) -> None: ...


class ScheduledTaskRepository(Protocol):
    async def get_by_id(self, task_id: int) -> ScheduledTaskModel | None: ...

    async def update_url(self, task_id: int, url: str) -> None: ...

    async def update_previous_and_next_run(
        self, task_id: int, previous_run: datetime, next_run: datetime
    ) -> None: ...

    async def list_active_in_window(self, start: datetime, end: datetime | None = None) -> list[DueTask]: ...


class ScheduledTaskLogRepository(Protocol):
    async def create(self, entry: ScheduledTaskLogModel) -> ScheduledTaskLogModel: ...


class EmailTemplateRepository(Protocol):
    async def get_template_by_id(self, template_id: int) -> EmailTemplateParts | None: ...
