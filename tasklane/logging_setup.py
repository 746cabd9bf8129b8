"""Logging setup for the command line entry points."""

from __future__ import annotations

import logging

from tasklane.config.models import LoggingConfig

# Third-party loggers that are noisy at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore", "hatchet_sdk")


def configure_logging(config: LoggingConfig) -> None:
    """Apply level and format to the root logger."""
    logging.basicConfig(level=config.level, format=config.format, force=True)
    if config.level != "DEBUG":
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
