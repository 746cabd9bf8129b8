"""Unit tests for database engine creation."""

from __future__ import annotations

import pytest

from tasklane.config import DatabaseConfig
from tasklane.db import ConfigurationError, create_engine, resolve_url
from tasklane.db.engine import DATABASE_URL_ENV


@pytest.mark.parametrize(
    "raw",
    [
        "postgresql://u:p@localhost:5432/tasklane",
        "postgres://u:p@localhost:5432/tasklane",
        "postgresql+asyncpg://u:p@localhost:5432/tasklane",
    ],
)
def test_resolve_url_switches_to_asyncpg(raw: str) -> None:
    url = resolve_url(raw)
    assert url.drivername == "postgresql+asyncpg"
    assert (url.host, url.port, url.database) == ("localhost", 5432, "tasklane")


def test_resolve_url_reads_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(DATABASE_URL_ENV, " postgresql://u:p@db:5432/tasklane ")
    assert resolve_url().host == "db"


def test_resolve_url_requires_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
    with pytest.raises(ConfigurationError, match=DATABASE_URL_ENV):
        resolve_url(None)


def test_resolve_url_rejects_other_databases() -> None:
    with pytest.raises(ConfigurationError, match="PostgreSQL"):
        resolve_url("mysql://u:p@localhost/tasklane")


def test_resolve_url_rejects_garbage() -> None:
    with pytest.raises(ConfigurationError, match="Invalid database URL"):
        resolve_url("not a url")


def test_create_engine_applies_database_section() -> None:
    engine = create_engine(
        DatabaseConfig(url="postgresql://u:p@localhost:5432/tasklane", pool_size=7, echo=True)
    )
    assert engine.url.drivername == "postgresql+asyncpg"
    assert engine.sync_engine.pool.size() == 7
    assert engine.sync_engine.echo is True
