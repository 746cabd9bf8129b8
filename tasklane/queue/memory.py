"""In-process broker with named lanes, per-lane worker pools and retries."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import deque
from collections.abc import Mapping
from typing import Any

from tasklane.queue.models import DEFAULT_LANE_CONCURRENCY, Job, JobHandler
from tasklane.queue.retry import RetryStrategy


class InMemoryBroker:
    """Simple in-memory broker implementing at-least-once lane semantics.

    Each lane owns an ``asyncio.Queue`` drained by ``concurrency`` consumer
    routines. Jobs are lost when the process exits; use the Hatchet broker for
    durable delivery.
    """

    def __init__(
        self,
        *,
        lanes: Mapping[str, int] | None = None,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        max_retry_delay_seconds: float = 300.0,
        job_timeout_seconds: float = 60.0,
        history_size: int = 1000,
        logger: logging.Logger | None = None,
    ) -> None:
        lane_config = dict(DEFAULT_LANE_CONCURRENCY if lanes is None else lanes)
        if not lane_config:
            raise ValueError("at least one lane is required")
        self._lanes = {name: max(1, int(size)) for name, size in lane_config.items()}
        self._queues: dict[str, asyncio.Queue[Job]] = {name: asyncio.Queue() for name in self._lanes}
        self._max_retries = max(0, int(max_retries))
        self._retry_delay_seconds = max(0.0, float(retry_delay_seconds))
        self._max_retry_delay_seconds = max(0.0, float(max_retry_delay_seconds))
        self._job_timeout_seconds = float(job_timeout_seconds)
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._handler: JobHandler | None = None
        self._consumers: list[asyncio.Task[Any]] = []
        self._retrying: set[asyncio.Task[Any]] = set()
        # Recent outcomes only.
        self._acked: deque[str] = deque(maxlen=max(1, int(history_size)))
        self._dead_letters: deque[tuple[Job, str]] = deque(maxlen=max(1, int(history_size)))

    @property
    def lanes(self) -> dict[str, int]:
        return dict(self._lanes)

    async def enqueue(self, job_type: str, payload: str, lane: str) -> str:
        if lane not in self._queues:
            raise ValueError(f"unknown lane: {lane}")
        job = Job(job_id=uuid.uuid4().hex, job_type=job_type, payload=payload, lane=lane)
        self._queues[lane].put_nowait(job)
        self._logger.debug("Enqueued job %s (%s) on lane %s", job.job_id, job_type, lane)
        return job.job_id

    def start(self, handler: JobHandler) -> None:
        """Spawn consumer routines for every lane."""
        if self._consumers:
            raise RuntimeError("broker already started")
        self._handler = handler
        for lane, concurrency in self._lanes.items():
            for index in range(concurrency):
                task = asyncio.create_task(self._consume(lane), name=f"tasklane-lane:{lane}:{index}")
                self._consumers.append(task)
        self._logger.info("In-memory broker started with lanes %s", self._lanes)

    async def join(self) -> None:
        """Wait until every lane is empty and no retry is pending."""
        while True:
            await asyncio.gather(*(queue.join() for queue in self._queues.values()))
            if not self._retrying:
                return
            await asyncio.gather(*list(self._retrying), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel consumer routines and pending retries."""
        tasks = [*self._consumers, *self._retrying]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._consumers.clear()
        self._retrying.clear()
        self._logger.info("In-memory broker stopped")

    async def _consume(self, lane: str) -> None:
        queue = self._queues[lane]
        while True:
            job = await queue.get()
            try:
                await self._execute(job)
            finally:
                queue.task_done()

    async def _execute(self, job: Job) -> None:
        if self._handler is None:
            raise RuntimeError("broker not started")
        try:
            await asyncio.wait_for(self._handler(job), timeout=self._job_timeout_seconds)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._on_failure(job, exc)
            return
        self._acked.append(job.job_id)

    def _on_failure(self, job: Job, exc: Exception) -> None:
        reason = str(exc) or exc.__class__.__name__
        if not RetryStrategy.should_retry(error=exc, attempt=job.attempt, max_retries=self._max_retries):
            self._dead_letters.append((job, reason))
            self._logger.error(
                "Job %s (%s) failed permanently after %d attempt(s): %s",
                job.job_id,
                job.job_type,
                job.attempt,
                reason,
            )
            return
        delay = RetryStrategy.calculate_delay(
            job.attempt,
            base_delay_seconds=self._retry_delay_seconds,
            max_delay_seconds=self._max_retry_delay_seconds,
        )
        self._logger.warning(
            "Job %s (%s) failed on attempt %d, retrying in %.1fs: %s",
            job.job_id,
            job.job_type,
            job.attempt,
            delay,
            reason,
        )
        retry = Job(
            job_id=job.job_id,
            job_type=job.job_type,
            payload=job.payload,
            lane=job.lane,
            attempt=job.attempt + 1,
            enqueued_at=job.enqueued_at,
        )
        task = asyncio.create_task(self._requeue_later(retry, delay))
        self._retrying.add(task)
        task.add_done_callback(self._retrying.discard)

    async def _requeue_later(self, job: Job, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        self._queues[job.lane].put_nowait(job)

    def get_acked(self) -> list[str]:
        return list(self._acked)

    def get_dead_letters(self) -> list[tuple[Job, str]]:
        return list(self._dead_letters)

    def pending_count(self) -> int:
        return sum(queue.qsize() for queue in self._queues.values())
