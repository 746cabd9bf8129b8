"""Unit tests for payload encoding, enqueue helpers and retry policy."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from tasklane.errors import ContentError, EmailDeliveryError, PayloadError, WebhookError
from tasklane.queue import (
    RetryStrategy,
    decode_task_id,
    encode_task_id,
    enqueue_immediate_task,
    enqueue_scheduled_task,
)


def test_encode_task_id_is_decimal_string() -> None:
    assert encode_task_id(42) == "42"


@pytest.mark.parametrize(("payload", "expected"), [("42", 42), (b"7", 7), (" 13 ", 13)])
def test_decode_task_id(payload: str | bytes, expected: int) -> None:
    assert decode_task_id(payload) == expected


@pytest.mark.parametrize("payload", ["", "abc", "4.2", "12abc", b"\xff"])
def test_decode_task_id_rejects_malformed_payload(payload: str | bytes) -> None:
    with pytest.raises(PayloadError, match="failed to parse task ID"):
        decode_task_id(payload)


@pytest.mark.asyncio
async def test_enqueue_immediate_task_uses_immediate_lane() -> None:
    queue = AsyncMock()
    queue.enqueue.return_value = "job-1"
    job_id = await enqueue_immediate_task(queue, 42)
    assert job_id == "job-1"
    queue.enqueue.assert_awaited_once_with("immediate:task", "42", "immediate")


@pytest.mark.asyncio
async def test_enqueue_scheduled_task_uses_default_lane() -> None:
    queue = AsyncMock()
    queue.enqueue.return_value = "job-2"
    await enqueue_scheduled_task(queue, 5)
    queue.enqueue.assert_awaited_once_with("scheduled:task", "5", "default")


@pytest.mark.parametrize("error", [ValueError("x"), PayloadError("x"), ContentError("x"), TypeError("x")])
def test_retry_strategy_never_retries_validation_errors(error: Exception) -> None:
    assert RetryStrategy.should_retry(error=error, attempt=1, max_retries=3) is False


@pytest.mark.parametrize(
    "error",
    [RuntimeError("x"), EmailDeliveryError("smtp"), WebhookError("500", http_status=500)],
)
def test_retry_strategy_retries_downstream_errors_until_budget(error: Exception) -> None:
    assert RetryStrategy.should_retry(error=error, attempt=1, max_retries=3) is True
    assert RetryStrategy.should_retry(error=error, attempt=3, max_retries=3) is True
    assert RetryStrategy.should_retry(error=error, attempt=4, max_retries=3) is False


def test_retry_strategy_zero_budget() -> None:
    assert RetryStrategy.should_retry(error=RuntimeError("x"), attempt=1, max_retries=0) is False


def test_retry_delay_is_exponential_and_capped() -> None:
    delays = [RetryStrategy.calculate_delay(n, base_delay_seconds=2, max_delay_seconds=10) for n in range(1, 6)]
    assert delays == [2.0, 4.0, 8.0, 10.0, 10.0]
