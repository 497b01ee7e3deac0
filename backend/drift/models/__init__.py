"""ORM models package exports."""

from drift.models.conversation_index_cache import ConversationIndexCache

__all__ = ["ConversationIndexCache"]
