"""Shared test fixtures for tasklane."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import pytest

from tasklane.composer import EmailTemplateParts
from tasklane.persistence import (
    InMemoryEmailTemplateRepository,
    InMemoryImmediateTaskRepository,
    InMemoryScheduledTaskLogRepository,
    InMemoryScheduledTaskRepository,
)

FIXED_NOW = datetime(2024, 3, 1, 12, 0, 30, tzinfo=timezone.utc)


@dataclass(frozen=True)
class SentEmail:
    to: str
    subject: str
    body: str


class RecordingMailer:
    """Mailer fake that records deliveries or raises ``error`` when set."""

    def __init__(self) -> None:
        self.sent: list[SentEmail] = []
        self.error: Exception | None = None

    async def send(self, to: str, subject: str, html_body: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(SentEmail(to=to, subject=subject, body=html_body))


class FakeClock:
    """Settable clock; ``advance`` moves it forward."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta) -> None:  # type: ignore[no-untyped-def]
        self.now = self.now + delta


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def immediate_tasks() -> InMemoryImmediateTaskRepository:
    return InMemoryImmediateTaskRepository()


@pytest.fixture
def scheduled_tasks() -> InMemoryScheduledTaskRepository:
    return InMemoryScheduledTaskRepository()


@pytest.fixture
def task_logs() -> InMemoryScheduledTaskLogRepository:
    return InMemoryScheduledTaskLogRepository()


@pytest.fixture
def templates() -> InMemoryEmailTemplateRepository:
    repo = InMemoryEmailTemplateRepository()
    repo.add(1, EmailTemplateParts(subject_template="Welcome {{1}}", body_template="Hi {{1}}, code {{2}}"))
    return repo
