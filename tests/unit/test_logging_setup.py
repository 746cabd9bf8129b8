"""Unit tests for CLI logging setup."""

from __future__ import annotations

import logging

import pytest

from tasklane.config import LoggingConfig
from tasklane.logging_setup import configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    httpx_level = logging.getLogger("httpx").level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(httpx_level)


def test_configure_logging_sets_level_and_quiets_http_client(restore_root_logger) -> None:
    configure_logging(LoggingConfig(level="warning"))
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING


def test_configure_logging_debug_keeps_http_client_verbose(restore_root_logger) -> None:
    logging.getLogger("httpx").setLevel(logging.NOTSET)
    configure_logging(LoggingConfig(level="DEBUG"))
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.NOTSET
