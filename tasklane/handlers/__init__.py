"""Job handlers for immediate and scheduled tasks."""

from tasklane.handlers.immediate import TEMPLATE_REQUIRED_MESSAGE, ImmediateTaskHandler
from tasklane.handlers.scheduled import ScheduledTaskHandler

__all__ = [
    "ImmediateTaskHandler",
    "ScheduledTaskHandler",
    "TEMPLATE_REQUIRED_MESSAGE",
]
