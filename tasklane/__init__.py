"""tasklane: queue-backed execution of immediate and cron-scheduled tasks."""

from tasklane.composer import ComposedEmail, EmailTemplateParts, compose, parse_content
from tasklane.cron import next_run, validate_cron
from tasklane.errors import TaskLaneError
from tasklane.handlers import ImmediateTaskHandler, ScheduledTaskHandler
from tasklane.queue import InMemoryBroker, Job, JobType, Lane, enqueue_immediate_task, enqueue_scheduled_task
from tasklane.scheduler import DueTaskScheduler
from tasklane.worker import Worker, build_worker

__version__ = "0.1.0"

__all__ = [
    "ComposedEmail",
    "DueTaskScheduler",
    "EmailTemplateParts",
    "ImmediateTaskHandler",
    "InMemoryBroker",
    "Job",
    "JobType",
    "Lane",
    "ScheduledTaskHandler",
    "TaskLaneError",
    "Worker",
    "build_worker",
    "compose",
    "enqueue_immediate_task",
    "enqueue_scheduled_task",
    "next_run",
    "parse_content",
    "validate_cron",
]
