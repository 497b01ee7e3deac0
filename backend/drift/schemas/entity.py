"""Entity, candidate and mention response schemas."""

from pydantic import BaseModel, ConfigDict, Field


class TextQuery(BaseModel):
    """Free text to scan for references."""

    text: str
    message_id: str = ""


class EntityCandidateRead(BaseModel):
    """Detected span before canonicalization."""

    model_config = ConfigDict(from_attributes=True)

    surface: str
    start: int
    end: int
    type: str
    message_id: str
    confidence: float


class CanonicalEntityRead(BaseModel):
    """Canonical entity with every known surface variant."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: str
    alt_names: list[str] = Field(default_factory=list)


class MentionRead(BaseModel):
    """Serialized mention; offsets point into the original message text."""

    model_config = ConfigDict(from_attributes=True)

    entity_id: str
    message_id: str
    surface: str
    start: int
    end: int
    created_at: str
    snippet: str


class KnownEntityMatchRead(BaseModel):
    """Known entity name found in arbitrary text."""

    entity_id: str
    surface: str
    start: int
    end: int
