"""Controlled vocabularies for the reference engine."""

from drift.schema.entity_types import (
    ENTITY_TYPE_VALUES,
    TYPE_PRIORITY,
    EntityType,
    normalize_entity_type,
    type_priority,
)

__all__ = [
    "ENTITY_TYPE_VALUES",
    "TYPE_PRIORITY",
    "EntityType",
    "normalize_entity_type",
    "type_priority",
]
