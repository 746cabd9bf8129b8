"""Configuration models for tasklane."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tasklane.queue.hatchet import HatchetConfig
from tasklane.queue.models import DEFAULT_LANE_CONCURRENCY


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str | None = Field(default=None, description="Async SQLAlchemy URL; falls back to TASKLANE_DATABASE_URL.")
    pool_size: int = Field(default=25, ge=1)
    max_overflow: int = Field(default=5, ge=0)
    pool_timeout: float = Field(default=30.0, gt=0)
    pool_recycle: int = Field(default=300, ge=-1)
    pool_pre_ping: bool = Field(default=True)
    echo: bool = Field(default=False)


class SMTPConfig(BaseModel):
    """Outbound mail server configuration."""

    host: str = Field(default="localhost")
    port: int = Field(default=587, ge=1, le=65535)
    username: str | None = Field(default=None)
    password: str | None = Field(default=None)
    from_address: str = Field(default="noreply@localhost")
    use_ssl: bool = Field(default=False)
    starttls: bool = Field(default=True)
    timeout_seconds: float = Field(default=30.0, gt=0)


class QueueConfig(BaseModel):
    """Broker selection, lane sizes and retry policy."""

    backend: Literal["memory", "hatchet"] = Field(default="memory")
    lanes: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_LANE_CONCURRENCY))
    max_retries: int = Field(default=3, ge=0, le=25)
    retry_delay_seconds: float = Field(default=1.0, ge=0.0)
    job_timeout_seconds: float = Field(default=60.0, gt=0)

    @field_validator("lanes")
    @classmethod
    def lanes_must_be_positive(cls, v: dict[str, int]) -> dict[str, int]:
        if not v:
            raise ValueError("at least one lane is required")
        for name, concurrency in v.items():
            if concurrency < 1:
                raise ValueError(f"lane {name!r} concurrency must be >= 1")
        return v


class WebhookConfig(BaseModel):
    """Outbound webhook call configuration."""

    timeout_seconds: float = Field(default=10.0, gt=0)


class SchedulerConfig(BaseModel):
    """Due-task scheduler loop configuration."""

    poll_interval_seconds: float = Field(default=10.0, gt=0)
    horizon_hours: float = Field(default=24.0, gt=0)


class LoggingConfig(BaseModel):
    """Log level and line format for the command line entry points."""

    level: str = Field(default="INFO")
    format: str = Field(default="%(asctime)s %(levelname)s %(name)s: %(message)s")

    @field_validator("level")
    @classmethod
    def level_upper(cls, v: str) -> str:
        value = v.strip().upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return value


class TaskLaneConfig(BaseSettings):
    """Root configuration model for tasklane."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    smtp: SMTPConfig = Field(default_factory=SMTPConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    hatchet: HatchetConfig = Field(default_factory=HatchetConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="TASKLANE_",
        env_nested_delimiter="__",
        extra="ignore",
    )
