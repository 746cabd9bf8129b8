"""Database-related exceptions for tasklane.

Messages never include connection credentials.
"""


class DatabaseError(Exception):
    """Base exception for database setup."""

    pass


class ConfigurationError(DatabaseError):
    """Raised when database configuration is invalid or missing."""

    pass
