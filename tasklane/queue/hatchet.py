"""
Hatchet broker: durable lanes backed by Hatchet Server.

All Hatchet SDK usage is isolated in this module. Each job type becomes one
standalone Hatchet task whose concurrency is limited per lane.
"""

from __future__ import annotations

import logging
import os
import signal
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, field_validator, model_validator

from tasklane.errors import UnknownJobTypeError
from tasklane.queue.models import DEFAULT_LANE_CONCURRENCY, Job, JobHandler, JobType, Lane

logger = logging.getLogger(__name__)

JOB_TYPE_LANES: dict[str, str] = {
    JobType.IMMEDIATE_TASK.value: Lane.IMMEDIATE.value,
    JobType.SCHEDULED_TASK.value: Lane.DEFAULT.value,
}


# Lazy import to avoid loading hatchet_sdk when using the in-memory broker
def _get_hatchet():
    from hatchet_sdk import ConcurrencyExpression, ConcurrencyLimitStrategy, Hatchet
    from hatchet_sdk.config import ClientConfig, ClientTLSConfig

    return Hatchet, ClientConfig, ClientTLSConfig, ConcurrencyExpression, ConcurrencyLimitStrategy


class HatchetConfig(BaseModel):
    """Hatchet connection and worker configuration."""

    server_url: str = "http://localhost:7077"
    api_token: str | None = None
    grpc_host_port: str | None = None
    grpc_tls_strategy: str = "tls"
    namespace: str = "tasklane"
    worker_name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def connection_from_env(cls, data: Any) -> Any:
        if isinstance(data, dict):
            updates: dict[str, Any] = {}
            for field_name, env_name in (
                ("server_url", "HATCHET_SERVER_URL"),
                ("grpc_tls_strategy", "HATCHET_GRPC_TLS_STRATEGY"),
                ("grpc_host_port", "HATCHET_GRPC_HOST_PORT"),
            ):
                if field_name in data:
                    continue
                value = os.environ.get(env_name, "").strip()
                if value:
                    updates[field_name] = value
            if updates:
                data = {**data, **updates}
        return data

    @field_validator("server_url")
    @classmethod
    def server_url_format(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("server_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("grpc_tls_strategy")
    @classmethod
    def grpc_tls_strategy_not_empty(cls, v: str) -> str:
        value = v.strip().lower()
        if not value:
            raise ValueError("grpc_tls_strategy cannot be empty")
        return value

    @field_validator("grpc_host_port")
    @classmethod
    def grpc_host_port_not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return None
        value = v.strip()
        if not value:
            raise ValueError("grpc_host_port cannot be empty")
        return value


def _server_url_to_host_port(server_url: str) -> str:
    """Convert http://host:port to host:port."""
    if server_url.startswith("http://"):
        rest = server_url[7:]
    elif server_url.startswith("https://"):
        rest = server_url[8:]
    else:
        rest = server_url
    if "/" in rest:
        rest = rest.split("/", 1)[0]
    return rest if ":" in rest else f"{rest}:7077"


def task_name_for(job_type: str) -> str:
    """Hatchet task name for a job type (``immediate:task`` -> ``tasklane-immediate-task``)."""
    return "tasklane-" + job_type.replace(":", "-")


class JobInput(BaseModel):
    """Hatchet task input carrying the raw job payload."""

    payload: str
    lane: str = Lane.DEFAULT.value


class HatchetBroker:
    """Job queue and worker host on top of the Hatchet SDK."""

    def __init__(
        self,
        config: HatchetConfig,
        *,
        lanes: Mapping[str, int] | None = None,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        job_timeout_seconds: float = 60.0,
    ) -> None:
        self.config = config
        self._lanes = dict(lanes or DEFAULT_LANE_CONCURRENCY)
        self._max_retries = max(0, int(max_retries))
        self._retry_delay_seconds = max(0.0, float(retry_delay_seconds))
        self._job_timeout_seconds = float(job_timeout_seconds)
        self._hatchet: Any = None
        self._concurrency_cls: Any = None
        self._limit_strategy_cls: Any = None
        self._tasks: dict[str, Any] = {}
        self._handlers: dict[str, JobHandler] = {}

    def connect(self) -> None:
        """Connect to Hatchet Server."""
        token = self.config.api_token or os.environ.get("HATCHET_API_TOKEN", "")
        if not token:
            raise ValueError(
                "Hatchet API token required: set api_token in config or HATCHET_API_TOKEN"
            )
        hatchet_cls, client_config_cls, client_tls_config_cls, concurrency_cls, strategy_cls = _get_hatchet()
        try:
            grpc_host_port = self.config.grpc_host_port or _server_url_to_host_port(self.config.server_url)
            client_config = client_config_cls(
                host_port=grpc_host_port,
                server_url=self.config.server_url,
                token=token,
                namespace=self.config.namespace,
                tls_config=client_tls_config_cls(strategy=self.config.grpc_tls_strategy),
            )
            self._hatchet = hatchet_cls(config=client_config)
            self._concurrency_cls = concurrency_cls
            self._limit_strategy_cls = strategy_cls
            logger.info("Connected to Hatchet at %s", self.config.server_url)
        except Exception as e:
            logger.exception("Failed to connect to Hatchet")
            raise ConnectionError(f"Failed to connect to Hatchet Server: {e}") from e

    def disconnect(self) -> None:
        """Disconnect from Hatchet Server."""
        if self._hatchet is not None:
            self._hatchet = None
            self._tasks.clear()
            logger.info("Disconnected from Hatchet Server")

    def register(self, job_type: str, handler: JobHandler) -> None:
        """Route runs of ``job_type`` to ``handler`` in this process."""
        self._declare(job_type)
        self._handlers[job_type] = handler

    async def enqueue(self, job_type: str, payload: str, lane: str) -> str:
        if lane not in self._lanes:
            raise ValueError(f"unknown lane: {lane}")
        standalone = self._declare(job_type)
        try:
            ref = await standalone.aio_run_no_wait(JobInput(payload=payload, lane=lane))
        except Exception:
            logger.exception("Failed to enqueue %s job", job_type)
            raise
        return str(getattr(ref, "workflow_run_id", "") or "")

    def start_worker(self) -> None:
        """Start the Hatchet worker (blocking)."""
        if self._hatchet is None:
            raise RuntimeError("Must call connect() before start_worker()")
        if not self._handlers:
            raise RuntimeError("No job handlers registered; call register() first")
        if not hasattr(signal, "SIGQUIT"):
            # Hatchet SDK expects SIGQUIT on POSIX; map to SIGTERM for Windows.
            signal.SIGQUIT = signal.SIGTERM  # type: ignore[attr-defined,misc]
        worker_name = self.config.worker_name or f"tasklane-worker-{os.getpid()}"
        worker = self._hatchet.worker(
            name=worker_name,
            slots=sum(self._lanes.values()),
            workflows=[self._tasks[job_type] for job_type in self._handlers],
        )
        worker.start()

    def _declare(self, job_type: str) -> Any:
        standalone = self._tasks.get(job_type)
        if standalone is not None:
            return standalone
        if self._hatchet is None:
            raise RuntimeError("Must call connect() before declaring tasks")
        lane = JOB_TYPE_LANES.get(job_type, Lane.DEFAULT.value)
        concurrency = self._concurrency_cls(
            expression="input.lane",
            max_runs=self._lanes.get(lane, 1),
            limit_strategy=self._limit_strategy_cls.GROUP_ROUND_ROBIN,
        )

        async def run(input: JobInput, ctx: Any) -> dict[str, Any]:
            handler = self._handlers.get(job_type)
            if handler is None:
                raise UnknownJobTypeError(job_type)
            job = Job(
                job_id=str(ctx.workflow_run_id),
                job_type=job_type,
                payload=input.payload,
                lane=input.lane,
                attempt=int(getattr(ctx, "retry_count", 0) or 0) + 1,
            )
            await handler(job)
            return {"job_id": job.job_id}

        standalone = self._hatchet.task(
            name=task_name_for(job_type),
            input_validator=JobInput,
            retries=self._max_retries,
            backoff_factor=2.0,
            backoff_max_seconds=max(1, int(self._retry_delay_seconds * 2**self._max_retries)),
            execution_timeout=timedelta(seconds=self._job_timeout_seconds),
            concurrency=concurrency,
        )(run)
        self._tasks[job_type] = standalone
        return standalone
