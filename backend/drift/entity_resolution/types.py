"""Canonical entity and mention records held by the conversation index."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from drift.extraction.types import EntityCandidate
from drift.schema.entity_types import EntityType, normalize_entity_type


@dataclass(slots=True)
class CanonicalEntity:
    """One real-world referent with every surface variant seen so far."""

    id: str
    name: str
    type: EntityType
    alt_names: list[str] = field(default_factory=list)

    def add_alt_name(self, value: str) -> bool:
        """Register a variant once; blank values are ignored."""

        cleaned = value.strip()
        if not cleaned or cleaned in self.alt_names:
            return False
        self.alt_names.append(cleaned)
        return True

    def all_names(self) -> list[str]:
        return [self.name, *self.alt_names]

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "altNames": list(self.alt_names), "type": self.type}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> CanonicalEntity:
        return cls(
            id=str(payload["id"]),
            name=str(payload["name"]),
            type=normalize_entity_type(payload.get("type")),
            alt_names=[str(alias) for alias in payload.get("altNames") or []],
        )


@dataclass(frozen=True, slots=True)
class Mention:
    """One occurrence of an entity in a message, offsets into the original text."""

    entity_id: str
    message_id: str
    surface: str
    start: int
    end: int
    created_at: str
    snippet: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "entityId": self.entity_id,
            "messageId": self.message_id,
            "surface": self.surface,
            "start": self.start,
            "end": self.end,
            "createdAt": self.created_at,
            "snippet": self.snippet,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Mention:
        return cls(
            entity_id=str(payload["entityId"]),
            message_id=str(payload["messageId"]),
            surface=str(payload["surface"]),
            start=int(payload["start"]),
            end=int(payload["end"]),
            created_at=str(payload["createdAt"]),
            snippet=str(payload.get("snippet") or ""),
        )


@dataclass(slots=True)
class ResolvedCandidate:
    """Candidate paired with the canonical entity it was merged into."""

    candidate: EntityCandidate
    entity_id: str
    reason: str
    score: float
