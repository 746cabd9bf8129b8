"""Wire repositories, clients, handlers and brokers from configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tasklane.config.models import TaskLaneConfig
from tasklane.db import create_engine, create_session_factory
from tasklane.execution_log import ExecutionLogSink
from tasklane.handlers import ImmediateTaskHandler, ScheduledTaskHandler
from tasklane.mailer import Mailer, SMTPMailer
from tasklane.persistence import (
    SQLEmailTemplateRepository,
    SQLImmediateTaskRepository,
    SQLScheduledTaskLogRepository,
    SQLScheduledTaskRepository,
)
from tasklane.queue.hatchet import HatchetBroker
from tasklane.queue.memory import InMemoryBroker
from tasklane.scheduler import DueTaskScheduler
from tasklane.webhook import WebhookClient
from tasklane.worker import Worker, build_worker

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Everything a worker or scheduler process needs."""

    config: TaskLaneConfig
    engine: AsyncEngine
    worker: Worker
    scheduler: DueTaskScheduler
    broker: InMemoryBroker | HatchetBroker
    log_sink: ExecutionLogSink

    async def aclose(self) -> None:
        await self.log_sink.drain()
        await self.engine.dispose()


def build_engine(config: TaskLaneConfig) -> AsyncEngine:
    return create_engine(config.database)


def build_broker(config: TaskLaneConfig) -> InMemoryBroker | HatchetBroker:
    """Create the configured broker. The Hatchet broker is connected."""
    queue = config.queue
    if queue.backend == "hatchet":
        broker = HatchetBroker(
            config.hatchet,
            lanes=queue.lanes,
            max_retries=queue.max_retries,
            retry_delay_seconds=queue.retry_delay_seconds,
            job_timeout_seconds=queue.job_timeout_seconds,
        )
        broker.connect()
        return broker
    return InMemoryBroker(
        lanes=queue.lanes,
        max_retries=queue.max_retries,
        retry_delay_seconds=queue.retry_delay_seconds,
        job_timeout_seconds=queue.job_timeout_seconds,
    )


def build_task_worker(
    config: TaskLaneConfig,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    mailer: Mailer | None = None,
    webhook_client: WebhookClient | None = None,
) -> tuple[Worker, ExecutionLogSink]:
    """Create a worker routing both job types to SQL-backed handlers."""
    mailer = mailer or SMTPMailer(config.smtp)
    webhook_client = webhook_client or WebhookClient(timeout_seconds=config.webhook.timeout_seconds)
    templates = SQLEmailTemplateRepository(session_factory)
    log_sink = ExecutionLogSink(SQLScheduledTaskLogRepository(session_factory))
    immediate = ImmediateTaskHandler(SQLImmediateTaskRepository(session_factory), templates, mailer)
    scheduled = ScheduledTaskHandler(
        SQLScheduledTaskRepository(session_factory),
        templates,
        mailer,
        log_sink,
        webhook_client,
    )
    return build_worker(immediate, scheduled), log_sink


def build_runtime(config: TaskLaneConfig) -> Runtime:
    engine = build_engine(config)
    session_factory = create_session_factory(engine)
    broker = build_broker(config)
    worker, log_sink = build_task_worker(config, session_factory)
    scheduler = DueTaskScheduler(
        SQLScheduledTaskRepository(session_factory),
        broker,
        poll_interval=timedelta(seconds=config.scheduler.poll_interval_seconds),
        horizon=timedelta(hours=config.scheduler.horizon_hours),
    )
    logger.info("Runtime built with %s broker, lanes %s", config.queue.backend, config.queue.lanes)
    return Runtime(
        config=config,
        engine=engine,
        worker=worker,
        scheduler=scheduler,
        broker=broker,
        log_sink=log_sink,
    )
