"""Typed detection inputs and outputs independent of persistence."""

from dataclasses import dataclass
from typing import Literal

from drift.schema.entity_types import EntityType

AuthorType = Literal["user", "assistant", "system"]


@dataclass(slots=True)
class ChatMessage:
    """Message supplied by the chat UI for indexing."""

    id: str
    author_type: AuthorType
    created_at: str
    text: str


@dataclass(slots=True)
class EntityCandidate:
    """Detected, not yet canonicalized span of a message."""

    surface: str
    start: int
    end: int
    type: EntityType
    message_id: str
    confidence: float
