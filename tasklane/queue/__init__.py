"""Job queue: lanes, brokers and producer helpers."""

from tasklane.queue.jobs import (
    decode_task_id,
    encode_task_id,
    enqueue_immediate_task,
    enqueue_scheduled_task,
)
from tasklane.queue.memory import InMemoryBroker
from tasklane.queue.models import DEFAULT_LANE_CONCURRENCY, Job, JobHandler, JobType, Lane
from tasklane.queue.protocols import JobQueue
from tasklane.queue.retry import RetryStrategy

__all__ = [
    "DEFAULT_LANE_CONCURRENCY",
    "InMemoryBroker",
    "Job",
    "JobHandler",
    "JobQueue",
    "JobType",
    "Lane",
    "RetryStrategy",
    "decode_task_id",
    "encode_task_id",
    "enqueue_immediate_task",
    "enqueue_scheduled_task",
]
