"""Core application components."""

from rentdesk.core.config import settings
from rentdesk.core.database import Base, get_db, engine

__all__ = ["settings", "Base", "get_db", "engine"]
