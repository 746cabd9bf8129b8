"""ORM models and status enums for task persistence."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from tasklane.composer import EmailTemplateParts
from tasklane.db import Base


class ImmediateTaskStatus(str, Enum):
    """Lifecycle of an immediate task. Completed and Failed are terminal."""

    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ImmediateTaskStatus.PENDING


class ScheduledTaskLogStatus(str, Enum):
    """Outcome of a single scheduled task firing."""

    COMPLETED = "Completed"
    FAILED = "Failed"


def _enum_column(enum_cls: type[Enum]) -> SAEnum:
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [member.value for member in members],
    )


class EmailTemplateModel(Base):
    """Email template with 1-indexed ``{{i}}`` body placeholders."""

    __tablename__ = "email_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    subject_template: Mapped[str] = mapped_column(Text, nullable=False)
    body_template: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def to_parts(self) -> EmailTemplateParts:
        return EmailTemplateParts(subject_template=self.subject_template, body_template=self.body_template)


class ImmediateTaskModel(Base):
    """One-shot email task."""

    __tablename__ = "immediate_tasks"
    __table_args__ = (
        Index("idx_immediate_tasks_user_id", "user_id"),
        Index("idx_immediate_tasks_template_id", "template_id"),
        Index("idx_immediate_tasks_status", "status"),
        Index("idx_immediate_tasks_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    template_id: Mapped[int | None] = mapped_column(
        ForeignKey("email_templates.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[ImmediateTaskStatus] = mapped_column(
        _enum_column(ImmediateTaskStatus), nullable=False, default=ImmediateTaskStatus.PENDING
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ScheduledTaskModel(Base):
    """Cron-recurring task combining an optional webhook and an optional email."""

    __tablename__ = "scheduled_tasks"
    __table_args__ = (
        Index("idx_scheduled_tasks_user_id", "user_id"),
        Index("idx_scheduled_tasks_template_id", "template_id"),
        Index("idx_scheduled_tasks_active", "active"),
        Index("idx_scheduled_tasks_next_run", "next_run"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    template_id: Mapped[int | None] = mapped_column(
        ForeignKey("email_templates.id", ondelete="SET NULL"), nullable=True
    )
    url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cron: Mapped[str] = mapped_column(String(100), nullable=False)
    next_run: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    previous_run: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ScheduledTaskLogModel(Base):
    """Append-only record of one scheduled task firing."""

    __tablename__ = "scheduled_task_logs"
    __table_args__ = (
        Index("idx_scheduled_task_logs_task_id", "task_id"),
        Index("idx_scheduled_task_logs_job_id", "job_id"),
        Index("idx_scheduled_task_logs_status", "status"),
        Index("idx_scheduled_task_logs_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(ForeignKey("scheduled_tasks.id", ondelete="CASCADE"), nullable=False)
    job_id: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[ScheduledTaskLogStatus] = mapped_column(_enum_column(ScheduledTaskLogStatus), nullable=False)
    http_status: Mapped[int] = mapped_column(Integer, nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
