"""Queue protocol shared by producers, the scheduler and broker backends."""

from __future__ import annotations

from typing import Protocol


class JobQueue(Protocol):
    """Producer side of a broker."""

    async def enqueue(self, job_type: str, payload: str, lane: str) -> str:
        """Enqueue a job and return its job id."""
