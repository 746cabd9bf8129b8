"""Job, job type and lane definitions shared by brokers and the worker."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class JobType(str, Enum):
    """Job types understood by the worker."""

    IMMEDIATE_TASK = "immediate:task"
    SCHEDULED_TASK = "scheduled:task"


class Lane(str, Enum):
    """Named queue partitions with their own concurrency budget."""

    IMMEDIATE = "immediate"
    DEFAULT = "default"


DEFAULT_LANE_CONCURRENCY: dict[str, int] = {
    Lane.IMMEDIATE.value: 5,
    Lane.DEFAULT.value: 1,
}


@dataclass(slots=True)
class Job:
    """A single delivery of a job. ``attempt`` starts at 1."""

    job_id: str
    job_type: str
    payload: str
    lane: str = Lane.DEFAULT.value
    attempt: int = 1
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


JobHandler = Callable[[Job], Awaitable[None]]
