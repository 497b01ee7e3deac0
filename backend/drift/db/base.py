"""SQLAlchemy metadata registry import for Alembic."""

from drift.models import ConversationIndexCache
from drift.models.base import Base

__all__ = ["Base", "ConversationIndexCache"]
