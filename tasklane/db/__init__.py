"""tasklane database layer: Base, engine, session factory, exceptions."""

from tasklane.db.base import Base
from tasklane.db.engine import create_engine, resolve_url
from tasklane.db.exceptions import ConfigurationError, DatabaseError
from tasklane.db.session import create_session_factory

__all__ = [
    "Base",
    "create_engine",
    "resolve_url",
    "create_session_factory",
    "DatabaseError",
    "ConfigurationError",
]
