"""Build the async engine used by every SQL repository."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from tasklane.db.exceptions import ConfigurationError

if TYPE_CHECKING:
    from tasklane.config.models import DatabaseConfig

DATABASE_URL_ENV = "TASKLANE_DATABASE_URL"
ASYNC_DRIVER = "postgresql+asyncpg"
_POSTGRES_DRIVERS = frozenset({"postgres", "postgresql", "postgresql+asyncpg"})


def resolve_url(database_url: str | None = None) -> URL:
    """Return ``database_url`` (or ``TASKLANE_DATABASE_URL``) on the asyncpg driver.

    Raises:
        ConfigurationError: no URL is set, it does not parse, or it is not PostgreSQL.
    """
    raw = (database_url or os.environ.get(DATABASE_URL_ENV, "")).strip()
    if not raw:
        raise ConfigurationError(f"Database URL not set. Set database.url or {DATABASE_URL_ENV}.")
    try:
        url = make_url(raw)
    except ArgumentError as exc:
        raise ConfigurationError(f"Invalid database URL: {exc}") from exc
    if url.drivername not in _POSTGRES_DRIVERS:
        raise ConfigurationError(f"Database URL must be PostgreSQL, got driver {url.drivername!r}.")
    return url.set(drivername=ASYNC_DRIVER)


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create the pooled engine described by the ``database`` config section."""
    return create_async_engine(
        resolve_url(config.url),
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_recycle=config.pool_recycle,
        pool_pre_ping=config.pool_pre_ping,
        echo=config.echo,
    )
