"""
Declarative base and shared columns for the costing models.

Every table gets an integer id and UTC created/updated timestamps.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import declarative_base

Base = declarative_base()

_PROTECTED_COLUMNS = ("id", "created_at", "updated_at")


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class BaseModel(Base):
    """Abstract parent of all costing tables."""

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Column values keyed by column name; datetimes become ISO strings."""
        values = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            values[column.name] = value.isoformat() if isinstance(value, datetime) else value
        return values

    def update_from_dict(self, data: Dict[str, Any]) -> None:
        """
        Copy matching keys from data onto the row.

        Unknown keys and the id/timestamp columns are ignored.
        """
        for column in self.__table__.columns:
            if column.name in data and column.name not in _PROTECTED_COLUMNS:
                setattr(self, column.name, data[column.name])
        self.updated_at = utc_now()

    def __repr__(self) -> str:
        name = getattr(self, "name", None)
        label = f", name={name!r}" if name is not None else ""
        return f"{self.__class__.__name__}(id={self.id}{label})"
