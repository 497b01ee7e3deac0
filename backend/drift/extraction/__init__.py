"""Entity candidate detection over chat message text."""

from drift.extraction.detector import ENTITY_PATTERNS, STOPLIST, detect_entities, infer_type
from drift.extraction.markdown_map import StrippedText, strip_with_map
from drift.extraction.types import ChatMessage, EntityCandidate

__all__ = [
    "ENTITY_PATTERNS",
    "STOPLIST",
    "ChatMessage",
    "EntityCandidate",
    "StrippedText",
    "detect_entities",
    "infer_type",
    "strip_with_map",
]
