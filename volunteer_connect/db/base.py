"""Declarative base shared by all ORM models."""

from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC now. Every stored timestamp uses this clock, not the database server's."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
