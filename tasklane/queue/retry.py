"""Retry decision and delay helpers for failed jobs."""

from __future__ import annotations


class RetryStrategy:
    """Bounded retries with exponential backoff.

    ``ValueError`` (validation failures, malformed payloads, invalid cron) is
    never retried: the same input fails the same way on every attempt.
    """

    @staticmethod
    def should_retry(*, error: BaseException, attempt: int, max_retries: int) -> bool:
        """Return whether a job that failed on ``attempt`` should run again."""
        if attempt > max_retries:
            return False
        return not isinstance(error, ValueError | TypeError)

    @staticmethod
    def calculate_delay(
        attempt: int,
        *,
        base_delay_seconds: float,
        max_delay_seconds: float = 3600,
    ) -> float:
        """Calculate bounded exponential backoff delay in seconds."""
        delay = max(0.0, float(base_delay_seconds)) * (2 ** max(0, int(attempt) - 1))
        return float(min(delay, max(0.0, float(max_delay_seconds))))
