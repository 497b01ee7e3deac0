"""Markdown list indexing and list-item reference matching."""

from __future__ import annotations

import itertools
import logging
import re
import threading
import time
from dataclasses import dataclass, field

from drift.entity_resolution.similarity import normalize_entity_text

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIST_LIMIT = 20
MAX_EXPLICIT_MATCHES = 8
MAX_TOTAL_MATCHES = 12

_LINE_SPLIT_RE = re.compile(r"\n+")
_BULLET_RE = re.compile(r"^\s*[-*+]\s+(.*)$")
_NUMBERED_RE = re.compile(r"^\s*\d+\.\s+(.*)$")
_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_ORDINAL_RE = re.compile(
    r"\bthe\s+(first|second|third|fourth|fifth|1st|2nd|3rd|4th|5th|one|two|three|four|five)"
    r"\s+(one|book|title|recommendation|item)\b",
    re.IGNORECASE,
)

ORDINALS: dict[str, int] = {
    "first": 0,
    "1st": 0,
    "one": 0,
    "second": 1,
    "2nd": 1,
    "two": 1,
    "third": 2,
    "3rd": 2,
    "three": 2,
    "fourth": 3,
    "4th": 3,
    "four": 3,
    "fifth": 4,
    "5th": 4,
    "five": 4,
}


@dataclass(frozen=True, slots=True)
class ListItem:
    item_index: int
    surface: str
    anchor_id: str


@dataclass(slots=True)
class ListRecord:
    """Items of one message's markdown list(s), in document order."""

    message_id: str
    items: list[ListItem] = field(default_factory=list)
    created_at: float = 0.0
    sequence: int = 0


@dataclass(frozen=True, slots=True)
class ListReference:
    """Span of query text that points at an indexed list item."""

    message_id: str
    anchor_id: str
    surface: str
    start: int
    end: int


def get_anchor_id(message_id: str, item_index: int) -> str:
    return f"list-{message_id}-{item_index}"


def strip_markdown_links(text: str) -> str:
    return _MARKDOWN_LINK_RE.sub(r"\1", text)


class ListIndex:
    """In-memory list index for one conversation session.

    Recency follows indexing order (``sequence``); ``created_at`` is kept as
    data only.
    """

    def __init__(self, *, recent_limit: int = DEFAULT_RECENT_LIST_LIMIT) -> None:
        self.recent_limit = recent_limit
        self._records: dict[str, ListRecord] = {}
        self._sequence = itertools.count()
        self._lock = threading.Lock()

    def index_list_message(self, message_id: str, text: str) -> ListRecord | None:
        """Record the list items of a message.

        A message is indexed once; later calls for the same id return the
        existing record unchanged.
        """

        with self._lock:
            existing = self._records.get(message_id)
            if existing is not None:
                return existing
            if not text:
                return None

            items: list[ListItem] = []
            for line in _LINE_SPLIT_RE.split(text):
                match = _BULLET_RE.match(line) or _NUMBERED_RE.match(line)
                if match is None:
                    continue
                surface = strip_markdown_links(match.group(1)).strip()
                if not surface:
                    continue
                index = len(items)
                items.append(ListItem(item_index=index, surface=surface, anchor_id=get_anchor_id(message_id, index)))
            if not items:
                return None

            record = ListRecord(
                message_id=message_id,
                items=items,
                created_at=time.time(),
                sequence=next(self._sequence),
            )
            self._records[message_id] = record
        logger.debug("list_index.indexed message_id=%s items=%d", message_id, len(items))
        return record

    def get_list_for_message(self, message_id: str) -> ListRecord | None:
        with self._lock:
            return self._records.get(message_id)

    def get_recent_lists(self, limit: int | None = None) -> list[ListRecord]:
        """Most recently indexed lists first."""

        with self._lock:
            ordered = sorted(self._records.values(), key=lambda r: r.sequence, reverse=True)
        return ordered[: self.recent_limit if limit is None else limit]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def match_list_items_in_text(self, text: str) -> list[ListReference]:
        """Resolve explicit item names and ordinal phrases in ``text``."""

        if not text:
            return []
        lower = text.lower()
        lists = self.get_recent_lists()
        results: list[ListReference] = []

        for record in lists:
            for item in record.items:
                needle = normalize_entity_text(item.surface)
                if len(needle) < 3:
                    continue
                pos = lower.find(needle)
                while pos != -1 and len(results) < MAX_EXPLICIT_MATCHES:
                    end = pos + len(needle)
                    results.append(ListReference(record.message_id, item.anchor_id, text[pos:end], pos, end))
                    pos = lower.find(needle, end)
                if len(results) >= MAX_EXPLICIT_MATCHES:
                    break
            if len(results) >= MAX_EXPLICIT_MATCHES:
                break

        latest = lists[0] if lists else None
        for match in _ORDINAL_RE.finditer(text):
            if latest is None or len(results) >= MAX_TOTAL_MATCHES:
                break
            position = ORDINALS.get(match.group(1).lower())
            if position is None or position >= len(latest.items):
                continue
            item = latest.items[position]
            results.append(
                ListReference(latest.message_id, item.anchor_id, match.group(0), match.start(), match.end())
            )

        results.sort(key=lambda r: (r.start, -(r.end - r.start)))
        kept: list[ListReference] = []
        last_end = -1
        for reference in results:
            if reference.start < last_end:
                continue
            kept.append(reference)
            last_end = reference.end
        return kept
