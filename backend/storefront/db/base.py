"""Storefront: declarative base shared by all models."""
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


def ensure_aware(value: datetime | None) -> datetime | None:
    """Some drivers hand back naive datetimes for timestamptz columns; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
