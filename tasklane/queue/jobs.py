"""Payload encoding and enqueue helpers for task producers."""

from __future__ import annotations

import re

from tasklane.errors import PayloadError
from tasklane.queue.models import JobType, Lane
from tasklane.queue.protocols import JobQueue

_TASK_ID_RE = re.compile(r"-?[0-9]+")


def encode_task_id(task_id: int) -> str:
    """Encode a task id as a decimal string payload."""
    return str(int(task_id))


def decode_task_id(payload: str | bytes) -> int:
    """Decode a decimal string payload into a task id.

    Raises:
        PayloadError: payload is not a decimal integer.
    """
    text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else str(payload)
    value = text.strip()
    if not _TASK_ID_RE.fullmatch(value):
        raise PayloadError(text)
    return int(value)


async def enqueue_immediate_task(queue: JobQueue, task_id: int) -> str:
    """Enqueue an immediate task on the immediate lane."""
    return await queue.enqueue(JobType.IMMEDIATE_TASK.value, encode_task_id(task_id), Lane.IMMEDIATE.value)


async def enqueue_scheduled_task(queue: JobQueue, task_id: int) -> str:
    """Enqueue a scheduled task firing on the default lane."""
    return await queue.enqueue(JobType.SCHEDULED_TASK.value, encode_task_id(task_id), Lane.DEFAULT.value)
