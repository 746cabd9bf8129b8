"""Persistence models and repositories for tasks, templates and execution logs."""

from tasklane.persistence.models import (
    EmailTemplateModel,
    ImmediateTaskModel,
    ImmediateTaskStatus,
    ScheduledTaskLogModel,
    ScheduledTaskLogStatus,
    ScheduledTaskModel,
)
from tasklane.persistence.protocols import (
    DueTask,
    EmailTemplateRepository,
    ImmediateTaskRepository,
    ScheduledTaskLogRepository,
    ScheduledTaskRepository,
)
from tasklane.persistence.repositories import (
    InMemoryEmailTemplateRepository,
    InMemoryImmediateTaskRepository,
    InMemoryScheduledTaskLogRepository,
    InMemoryScheduledTaskRepository,
    SQLEmailTemplateRepository,
    SQLImmediateTaskRepository,
    SQLScheduledTaskLogRepository,
    SQLScheduledTaskRepository,
)

__all__ = [
    "DueTask",
    "EmailTemplateModel",
    "EmailTemplateRepository",
    "ImmediateTaskModel",
    "ImmediateTaskRepository",
    "ImmediateTaskStatus",
    "InMemoryEmailTemplateRepository",
    "InMemoryImmediateTaskRepository",
    "InMemoryScheduledTaskLogRepository",
    "InMemoryScheduledTaskRepository",
    "SQLEmailTemplateRepository",
    "SQLImmediateTaskRepository",
    "SQLScheduledTaskLogRepository",
    "SQLScheduledTaskRepository",
    "ScheduledTaskLogModel",
    "ScheduledTaskLogRepository",
    "ScheduledTaskLogStatus",
    "ScheduledTaskModel",
    "ScheduledTaskRepository",
]
