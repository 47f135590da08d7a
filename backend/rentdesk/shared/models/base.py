"""
Shared columns for every RentDesk table.

Timestamps are naive UTC (see rentdesk.core.timezone). Each model names its
own table explicitly.
"""

from sqlalchemy import Column, Integer, DateTime

from rentdesk.core.database import Base
from rentdesk.core.timezone import utcnow_naive


class TimestampMixin:
    """created_at / updated_at, maintained by the ORM on insert and update."""

    created_at = Column(DateTime, default=utcnow_naive, nullable=False)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False)


class BaseModel(Base, TimestampMixin):
    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id}>"
