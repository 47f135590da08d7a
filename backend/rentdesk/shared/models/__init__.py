"""Shared database models."""

from rentdesk.shared.models.base import BaseModel, TimestampMixin

__all__ = [
    "BaseModel",
    "TimestampMixin",
]
