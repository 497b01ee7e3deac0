"""Message indexing request/response schemas."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from drift.extraction.types import ChatMessage
from drift.schemas.entity import MentionRead
from drift.schemas.lists import ListRecordRead


class ChatMessageIndex(BaseModel):
    """Single chat message to index."""

    id: str = Field(min_length=1)
    author_type: Literal["user", "assistant", "system"] = "assistant"
    created_at: datetime | None = None
    text: str

    def to_chat_message(self) -> ChatMessage:
        created = self.created_at or datetime.now(timezone.utc)
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return ChatMessage(
            id=self.id,
            author_type=self.author_type,
            created_at=created.isoformat(),
            text=self.text,
        )


class IndexedMessageRead(BaseModel):
    """Annotations produced for one indexed message."""

    model_config = ConfigDict(from_attributes=True)

    conversation_id: str
    message_id: str
    mentions: list[MentionRead]
    list_record: ListRecordRead | None = None
