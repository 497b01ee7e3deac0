"""Greedy canonicalization of detected candidates into conversation entities."""

from __future__ import annotations

import logging
import re
import uuid
from typing import Iterable, Protocol

from drift.entity_resolution.similarity import normalize_entity_text, string_similarity
from drift.entity_resolution.types import CanonicalEntity, ResolvedCandidate
from drift.extraction.types import EntityCandidate

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.82
_TRAILING_POSSESSIVE_RE = re.compile(r"['’]s$")


class EntityStore(Protocol):
    """Storage the resolver reads from and mints new entities into."""

    def iter_entities(self) -> Iterable[CanonicalEntity]:
        """Return every canonical entity in insertion order."""

    def add_entity(self, entity: CanonicalEntity) -> None:
        """Register a freshly minted entity."""


def new_entity_id() -> str:
    """Return an opaque ``ent-xxxxxxxx-xxxxxxxx`` identifier."""

    raw = uuid.uuid4().hex
    return f"ent-{raw[:8]}-{raw[8:16]}"


def strip_possessive(value: str) -> str:
    """Drop one trailing ``'s``."""

    return _TRAILING_POSSESSIVE_RE.sub("", value.strip())


class CanonicalResolver:
    """Type-scoped exact-then-fuzzy resolver.

    Candidates are processed in order and each one sees the entities minted
    for the candidates before it, so two normalized-equal surfaces of the same
    type always end up on the same entity.
    """

    def __init__(self, store: EntityStore, *, threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> None:
        self.store = store
        self.threshold = threshold

    def resolve_candidates(self, candidates: list[EntityCandidate]) -> list[ResolvedCandidate]:
        """Assign every candidate an entity id, minting entities as needed."""

        resolved: list[ResolvedCandidate] = []
        for candidate in candidates:
            match = self.match(candidate.surface, candidate.type)
            if match is None:
                entity = CanonicalEntity(
                    id=new_entity_id(),
                    name=candidate.surface,
                    type=candidate.type,
                    alt_names=[strip_possessive(candidate.surface)],
                )
                self.store.add_entity(entity)
                match = (entity.id, "new_entity", 1.0)
            entity_id, reason, score = match
            logger.debug(
                "entity_resolver.resolved surface=%r type=%s entity_id=%s reason=%s score=%.3f",
                candidate.surface,
                candidate.type,
                entity_id,
                reason,
                score,
            )
            resolved.append(
                ResolvedCandidate(candidate=candidate, entity_id=entity_id, reason=reason, score=score)
            )
        return resolved

    def match(self, surface: str, entity_type: str) -> tuple[str, str, float] | None:
        """Return ``(entity_id, reason, score)`` for an existing same-type entity."""

        normalized = normalize_entity_text(surface)
        same_type = [entity for entity in self.store.iter_entities() if entity.type == entity_type]

        for entity in same_type:
            if normalized == normalize_entity_text(entity.name):
                return (entity.id, "exact_name_match", 1.0)
            if any(normalized == normalize_entity_text(alias) for alias in entity.alt_names):
                return (entity.id, "alias_match", 1.0)

        best: tuple[str, float] | None = None
        for entity in same_type:
            for name in entity.all_names():
                score = string_similarity(surface, name)
                if best is None or score > best[1]:
                    best = (entity.id, score)
        if best is not None and best[1] >= self.threshold:
            return (best[0], "fuzzy_similarity", best[1])
        return None
