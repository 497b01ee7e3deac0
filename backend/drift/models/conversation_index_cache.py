"""Per-conversation entity index cache model."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from drift.models.base import Base, CreatedAtMixin, IdMixin


class ConversationIndexCache(Base, IdMixin, CreatedAtMixin):
    """Whole-document JSON snapshot of one conversation's entity index."""

    __tablename__ = "conversation_index_cache"

    cache_key: Mapped[str] = mapped_column(String(512), unique=True, index=True, nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
