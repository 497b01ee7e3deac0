"""Controlled entity type system for conversation references."""

from __future__ import annotations

from typing import Literal

EntityType = Literal["person", "book", "work", "org", "law", "case", "topic", "other"]

ENTITY_TYPE_VALUES: tuple[str, ...] = (
    "person",
    "book",
    "work",
    "org",
    "law",
    "case",
    "topic",
    "other",
)
ENTITY_TYPE_SET = set(ENTITY_TYPE_VALUES)

# Linking order used by the indexer. Every type is allowed today; the order
# is the priority hint for renderers that throttle links.
TYPE_PRIORITY: tuple[str, ...] = ENTITY_TYPE_VALUES

WORK_LIKE_TYPES = frozenset({"work", "book"})

_ENTITY_TYPE_SYNONYMS: dict[str, str] = {
    "people": "person",
    "author": "person",
    "individual": "person",
    "novel": "book",
    "isbn": "book",
    "paper": "work",
    "essay": "work",
    "thesis": "work",
    "organization": "org",
    "organisation": "org",
    "company": "org",
    "university": "org",
    "statute": "law",
    "act": "law",
    "regulation": "law",
    "lawsuit": "case",
    "docket": "case",
    "theme": "topic",
    "concept": "topic",
}


def normalize_entity_type(raw_type: str | None) -> str:
    """Normalize to the controlled entity type list."""

    cleaned = " ".join((raw_type or "").strip().split()).lower()
    if not cleaned:
        return "other"
    if cleaned in ENTITY_TYPE_SET:
        return cleaned
    return _ENTITY_TYPE_SYNONYMS.get(cleaned, "other")


def type_priority(entity_type: str) -> int:
    """Return the linking priority of a type (lower links first)."""

    try:
        return TYPE_PRIORITY.index(entity_type)
    except ValueError:
        return len(TYPE_PRIORITY)
