"""Cron evaluator: next fire time for standard 5-field cron expressions."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone

from croniter import croniter  # type: ignore[import-untyped]

from tasklane.errors import CronExpressionError

CRON_FIELD_COUNT = 5


def _normalize_expression(expression: str) -> str:
    if not isinstance(expression, str) or not expression.strip():
        raise CronExpressionError(str(expression), "expression cannot be empty")
    fields = expression.split()
    if len(fields) != CRON_FIELD_COUNT:
        raise CronExpressionError(
            expression,
            "expected 5 fields (minute hour day-of-month month day-of-week)",
        )
    normalized = " ".join(fields)
    if not croniter.is_valid(normalized):
        raise CronExpressionError(expression)
    return normalized


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate_cron(expression: str) -> bool:
    """Return whether expression is a valid 5-field cron expression."""
    try:
        _normalize_expression(expression)
    except CronExpressionError:
        return False
    return True


def next_run(expression: str, from_: datetime) -> datetime:
    """Return the first instant strictly after ``from_`` matching ``expression``.

    Naive reference times are treated as UTC. The result is timezone-aware.

    Raises:
        CronExpressionError: expression is empty, not 5 fields, or malformed.
    """
    normalized = _normalize_expression(expression)
    base = _as_utc(from_)
    iterator = croniter(normalized, base)
    candidate = iterator.get_next(datetime)
    while candidate <= base:
        candidate = iterator.get_next(datetime)
    return candidate


def upcoming_runs(expression: str, from_: datetime, count: int) -> Iterator[datetime]:
    """Yield the next ``count`` fire times after ``from_``."""
    current = from_
    for _ in range(max(0, int(count))):
        current = next_run(expression, current)
        yield current
