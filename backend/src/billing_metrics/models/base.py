"""Base model with common fields for all entities."""
from uuid import uuid4

from sqlalchemy import Column, DateTime, Uuid

from billing_metrics.database import Base as DeclarativeBase
from billing_metrics.utils.clock import utcnow


class Base(DeclarativeBase):
    """Base model class with common fields."""

    __abstract__ = True

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


def enum_values(enum_cls) -> list[str]:
    """Persist enum members by value (``active``) rather than name (``ACTIVE``)."""
    return [member.value for member in enum_cls]
