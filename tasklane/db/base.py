"""Declarative base for tasklane ORM models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all tasklane ORM models.

    Exposes metadata for the schema owned by the task service.
    """
