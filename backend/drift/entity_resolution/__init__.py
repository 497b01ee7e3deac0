"""Entity resolution package."""

from drift.entity_resolution.resolver import (
    DEFAULT_SIMILARITY_THRESHOLD,
    CanonicalResolver,
    EntityStore,
)
from drift.entity_resolution.types import CanonicalEntity, Mention, ResolvedCandidate

__all__ = [
    "DEFAULT_SIMILARITY_THRESHOLD",
    "CanonicalEntity",
    "CanonicalResolver",
    "EntityStore",
    "Mention",
    "ResolvedCandidate",
]
