"""Unified configuration system for tasklane."""

from tasklane.config.loader import ConfigLoadError, YAMLConfigLoader
from tasklane.config.models import (
    DatabaseConfig,
    LoggingConfig,
    QueueConfig,
    SchedulerConfig,
    SMTPConfig,
    TaskLaneConfig,
    WebhookConfig,
)
from tasklane.config.sources import load_config

__all__ = [
    "ConfigLoadError",
    "DatabaseConfig",
    "LoggingConfig",
    "QueueConfig",
    "SMTPConfig",
    "SchedulerConfig",
    "TaskLaneConfig",
    "WebhookConfig",
    "YAMLConfigLoader",
    "load_config",
]
