"""Deterministic entity candidate detection using an ordered regex cascade."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

from drift.extraction.markdown_map import strip_with_map
from drift.extraction.types import EntityCandidate
from drift.schema.entity_types import EntityType

logger = logging.getLogger(__name__)

# Letters only, and letters plus digits, without the underscore that \w carries.
_LETTER = r"[^\W\d_]"
_ALNUM = r"[^\W_]"
_NAME_TOKEN = rf"[A-Z](?:{_LETTER}|['’-])+"
_TITLE_TOKEN = rf"[A-Z](?:{_ALNUM}|['’-])+"
_AUTHOR = rf"{_NAME_TOKEN}(?:\s+{_NAME_TOKEN}){{0,3}}"
_WORK_NOUNS = "book|paper|novel|essay|work"

STOPLIST = frozenset(
    {
        "today",
        "yesterday",
        "monday",
        "tuesday",
        "wednesday",
        "thursday",
        "friday",
        "saturday",
        "sunday",
    }
)

Extracted = list[tuple[str, EntityType | None]]


@dataclass(frozen=True, slots=True)
class EntityPattern:
    """One step of the detection cascade."""

    name: str
    regex: re.Pattern[str]
    type: EntityType | None
    confidence: float
    extractor: Callable[[re.Match[str]], Extracted] | None = None

    def extract(self, match: re.Match[str]) -> Extracted:
        if self.extractor is not None:
            return self.extractor(match)
        return [(match.group(0), self.type)]


def _work_and_author(match: re.Match[str]) -> Extracted:
    return [(match.group(1), "work"), (match.group(2), "person")]


ENTITY_PATTERNS: tuple[EntityPattern, ...] = (
    EntityPattern(
        name="titled_person",
        regex=re.compile(rf"\b(?:Justice|Judge|Prof\.|Dr\.)\s+{_NAME_TOKEN}\s+{_NAME_TOKEN}\b"),
        type="person",
        confidence=0.95,
    ),
    EntityPattern(
        name="person_name",
        regex=re.compile(rf"\b{_NAME_TOKEN}\s+{_NAME_TOKEN}(?:\s+{_NAME_TOKEN})?(?:'s)?\b"),
        type="person",
        confidence=0.90,
    ),
    EntityPattern(
        name="possessive_work",
        regex=re.compile(rf"\b([A-Z](?:{_LETTER}|['’])+)['’]s\s+({_WORK_NOUNS})\b"),
        type="work",
        confidence=0.92,
    ),
    EntityPattern(
        name="title_by_author",
        regex=re.compile(rf"\b((?:{_TITLE_TOKEN}\s+){{1,8}}{_TITLE_TOKEN})\s+by\s+({_AUTHOR})\b"),
        type=None,
        confidence=0.96,
        extractor=_work_and_author,
    ),
    EntityPattern(
        name="title_dash_author",
        regex=re.compile(rf"\b((?:{_TITLE_TOKEN}\s+){{1,8}}{_TITLE_TOKEN})\s+[—–-]\s+({_AUTHOR})\b"),
        type=None,
        confidence=0.95,
        extractor=_work_and_author,
    ),
    EntityPattern(
        name="title_case",
        regex=re.compile(rf"\b(?:{_TITLE_TOKEN}\s+){{1,6}}{_TITLE_TOKEN}\b"),
        type=None,
        confidence=0.75,
    ),
    EntityPattern(
        name="isbn",
        regex=re.compile(
            r"\bISBN\s?:?\s?(97[89][- ]?\d{1,5}[- ]?\d{1,7}[- ]?\d{1,7}[- ]?[\dX])\b",
            re.IGNORECASE,
        ),
        type="book",
        confidence=0.92,
    ),
    EntityPattern(
        name="case_number",
        regex=re.compile(r"\b\d{3,}-\d{2,}\b"),
        type="case",
        confidence=0.80,
    ),
)

_ORG_RE = re.compile(r"\b(?:inc|corp|llc|gmbh|ltd|university|institute|foundation)\b", re.IGNORECASE)
_LAW_RE = re.compile(r"§|\b(?:u\.?s\.?c|cfr|article|act|law)\b", re.IGNORECASE)
_CASE_RE = re.compile(r"\b(?:v|vs|no)\.(?=\s|$)|\bcase\b|\b\d{3,}-\d{2,}\b", re.IGNORECASE)
_WORK_RE = re.compile(r"\b(?:book|paper|essay|novel|thesis)\b", re.IGNORECASE)
_PERSON_SHAPE_RE = re.compile(r"^[A-Z][a-z]+\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?(?:'s)?$")
_TOPIC_SHAPE_RE = re.compile(rf"^(?:{_TITLE_TOKEN}\s+){{1,5}}{_TITLE_TOKEN}$")
_POSSESSIVE_OWNER_RE = re.compile(rf"^([A-Z](?:{_LETTER}|['’])+?)['’]s\s+(?:{_WORK_NOUNS})$")
_AUTHOR_AHEAD_RE = re.compile(rf"\bby\s+({_AUTHOR})\b")
_AUTHOR_BEHIND_RE = re.compile(rf"({_NAME_TOKEN}\s+{_NAME_TOKEN})\s*['’]s\s*$")
AUTHOR_CONTEXT_WINDOW = 120


def infer_type(surface: str) -> EntityType:
    """Guess a type for surfaces whose pattern does not fix one."""

    if _ORG_RE.search(surface):
        return "org"
    if _LAW_RE.search(surface):
        return "law"
    if _CASE_RE.search(surface):
        return "case"
    if _WORK_RE.search(surface):
        return "work"
    if _PERSON_SHAPE_RE.match(surface):
        return "person"
    if _TOPIC_SHAPE_RE.match(surface):
        return "topic"
    return "other"


def possessive_owner(surface: str) -> str | None:
    """Return ``Evans`` for ``Evans's book``; ``None`` for other surfaces."""

    match = _POSSESSIVE_OWNER_RE.match(surface.strip())
    return match.group(1) if match else None


def extract_author_from_context(text: str, start: int, end: int) -> tuple[str, str] | None:
    """Find ``(full_name, surname)`` of an author named around a work span.

    Looks for ``by First Last`` after the span, then ``First Last's`` right
    before it, each within ``AUTHOR_CONTEXT_WINDOW`` characters.
    """

    after = text[end : end + AUTHOR_CONTEXT_WINDOW]
    before = text[max(0, start - AUTHOR_CONTEXT_WINDOW) : start]
    match = _AUTHOR_AHEAD_RE.search(after)
    full_name = match.group(1) if match else None
    if full_name is None:
        match = _AUTHOR_BEHIND_RE.search(before)
        full_name = match.group(1) if match else None
    if full_name is None:
        return None
    return full_name, full_name.split()[-1]


def detect_entities(text: str, message_id: str = "") -> list[EntityCandidate]:
    """Detect non-overlapping entity candidates in a message.

    Patterns run over markdown-stripped text; offsets in the returned
    candidates point into ``text`` itself.
    """

    if not text or text.lower() in STOPLIST:
        return []

    stripped = strip_with_map(text)
    clean = stripped.clean
    candidates: list[EntityCandidate] = []

    for pattern in ENTITY_PATTERNS:
        for match in pattern.regex.finditer(clean):
            for surface, fixed_type in pattern.extract(match):
                if not surface or len(surface.strip()) < 2:
                    continue
                if surface.lower() in STOPLIST:
                    continue
                start_clean = clean.find(surface, match.start())
                if start_clean == -1:
                    start_clean = clean.find(surface)
                start = stripped.map_to_original(start_clean)
                if start == -1:
                    continue
                last = stripped.map_to_original(start_clean + len(surface) - 1)
                end = last + 1 if last != -1 else start + len(surface)
                candidates.append(
                    EntityCandidate(
                        surface=surface,
                        start=start,
                        end=end,
                        type=fixed_type or infer_type(surface),
                        message_id=message_id,
                        confidence=pattern.confidence,
                    )
                )

    kept = _drop_overlaps(candidates)
    logger.debug(
        "entity_detector.detected message_id=%s raw=%d kept=%d",
        message_id,
        len(candidates),
        len(kept),
    )
    return kept


def _drop_overlaps(candidates: list[EntityCandidate]) -> list[EntityCandidate]:
    """Keep the earliest, then longest, then most confident span of each overlapping group."""

    ordered = sorted(candidates, key=lambda c: (c.start, -len(c.surface), -c.confidence))
    kept: list[EntityCandidate] = []
    last_end = -1
    for candidate in ordered:
        if candidate.start < last_end:
            continue
        kept.append(candidate)
        last_end = candidate.end
    return kept
