"""Conversation entity index: entities, mentions, and their lookups."""

from __future__ import annotations

import json
import logging
import re
import threading
from datetime import datetime, timezone
from typing import Any, Iterable

from pydantic import TypeAdapter, ValidationError

from drift.entity_resolution.resolver import DEFAULT_SIMILARITY_THRESHOLD, CanonicalResolver, strip_possessive
from drift.entity_resolution.types import CanonicalEntity, Mention, ResolvedCandidate
from drift.extraction.detector import (
    detect_entities,
    extract_author_from_context,
    possessive_owner,
)
from drift.extraction.types import ChatMessage, EntityCandidate
from drift.schema.entity_types import TYPE_PRIORITY, WORK_LIKE_TYPES, type_priority
from drift.services.index_cache import IndexCache, IndexCacheError, cache_key

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "drift_conversation_entity_index"
DEFAULT_FLUSH_INTERVAL = 10
SNIPPET_RADIUS = 80
SNIPPET_MAX_LENGTH = 240
COOCCURRENCE_DISTANCE = 140
MAX_KNOWN_MATCHES = 12
_HAS_LETTER_RE = re.compile(r"[A-Za-z]")
_DATETIME_ADAPTER = TypeAdapter(datetime)


def make_snippet(text: str, start: int, end: int) -> str:
    """Fixed-radius context excerpt around a span."""

    snippet = text[max(0, start - SNIPPET_RADIUS) : min(len(text), end + SNIPPET_RADIUS)]
    if len(snippet) > SNIPPET_MAX_LENGTH:
        return snippet[: SNIPPET_MAX_LENGTH - 3] + "…"
    return snippet


def created_at_key(value: str) -> tuple[int, Any]:
    """Sort key for ISO-8601 timestamps; unparseable values sort after, lexically.

    Parsing goes through pydantic so every ISO-8601 form it accepts (any
    fractional-second precision, ``Z`` suffix, offsets) orders by instant.
    """

    try:
        parsed = _DATETIME_ADAPTER.validate_python(value)
    except ValidationError:
        return (1, value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (0, parsed.timestamp())


def mention_anchor_id(mention: Mention) -> str:
    """DOM anchor the UI renders for a mention span."""

    return f"entity-{mention.message_id}-{mention.start}"


class ConversationEntityIndex:
    """Entities and mentions of one open conversation.

    The index is an explicit context object owned by a conversation session.
    Every mention sits in exactly one ``mentions_by_message`` bucket and one
    ``mentions_by_entity`` bucket, and its entity id resolves in ``entities``.
    """

    def __init__(
        self,
        conversation_id: str,
        *,
        cache: IndexCache | None = None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        flush_interval: int = DEFAULT_FLUSH_INTERVAL,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ) -> None:
        self.conversation_id = conversation_id
        self.cache = cache
        self.cache_key = cache_key(key_prefix, conversation_id)
        self.flush_interval = flush_interval
        self.entities: dict[str, CanonicalEntity] = {}
        self.mentions_by_entity: dict[str, list[Mention]] = {}
        self.mentions_by_message: dict[str, list[Mention]] = {}
        self._message_times: dict[str, str] = {}
        self._index_calls = 0
        self.resolver = CanonicalResolver(self, threshold=similarity_threshold)
        # Held for every read and write of the maps above.
        self._lock = threading.RLock()

    # EntityStore protocol

    def iter_entities(self) -> Iterable[CanonicalEntity]:
        with self._lock:
            return list(self.entities.values())

    def add_entity(self, entity: CanonicalEntity) -> None:
        with self._lock:
            self.entities[entity.id] = entity
            self.mentions_by_entity.setdefault(entity.id, [])

    # Detection and resolution

    def detect_entities(self, text: str, message_id: str = "") -> list[EntityCandidate]:
        return detect_entities(text, message_id)

    def resolve_candidates(self, candidates: list[EntityCandidate]) -> list[ResolvedCandidate]:
        return self.resolver.resolve_candidates(candidates)

    def index_message(self, message: ChatMessage) -> list[Mention]:
        """Detect, resolve, enrich and store the mentions of one message.

        A message that was already indexed is left untouched. Concurrent calls
        are serialized.
        """

        with self._lock:
            existing = self.mentions_by_message.get(message.id)
            if existing is not None:
                return list(existing)
            return self._index_new_message(message)

    def _index_new_message(self, message: ChatMessage) -> list[Mention]:
        text = message.text
        resolved = self.resolve_candidates(self.detect_entities(text, message.id))
        mentions: list[Mention] = []
        for item in resolved:
            candidate = item.candidate
            if candidate.type not in TYPE_PRIORITY:
                continue
            entity = self.entities[item.entity_id]
            if entity.type == "person":
                _add_surname_variants(entity)
            elif entity.type == "work":
                author = extract_author_from_context(text, candidate.start, candidate.end)
                if author is not None:
                    _add_author_variants(entity, *author)
                owner_mention = self._link_possessive_owner(message, candidate, entity)
                if owner_mention is not None:
                    mentions.append(owner_mention)
            mentions.append(self._build_mention(message, candidate.surface, candidate.start, candidate.end, entity.id))

        mentions.sort(key=lambda m: (m.start, type_priority(self.entities[m.entity_id].type)))
        self.mentions_by_message[message.id] = mentions
        self._message_times[message.id] = message.created_at
        for mention in mentions:
            bucket = self.mentions_by_entity.setdefault(mention.entity_id, [])
            bucket.append(mention)
            bucket.sort(key=lambda m: created_at_key(m.created_at))

        try:
            self._enrich_from_cooccurrence(mentions)
        except Exception:
            logger.exception(
                "entity_index.cooccurrence_failed conversation_id=%s message_id=%s",
                self.conversation_id,
                message.id,
            )

        self._index_calls += 1
        logger.info(
            "entity_index.indexed conversation_id=%s message_id=%s candidates=%d mentions=%d entities=%d",
            self.conversation_id,
            message.id,
            len(resolved),
            len(mentions),
            len(self.entities),
        )
        if self.flush_interval > 0 and self._index_calls % self.flush_interval == 0:
            self.persist()
        return list(mentions)

    def _build_mention(self, message: ChatMessage, surface: str, start: int, end: int, entity_id: str) -> Mention:
        return Mention(
            entity_id=entity_id,
            message_id=message.id,
            surface=surface,
            start=start,
            end=end,
            created_at=message.created_at,
            snippet=make_snippet(message.text, start, end),
        )

    def _link_possessive_owner(
        self,
        message: ChatMessage,
        candidate: EntityCandidate,
        work: CanonicalEntity,
    ) -> Mention | None:
        """Record ``Evans`` in ``Evans's book`` as a person mention nested in the work span."""

        owner = possessive_owner(candidate.surface)
        if owner is None:
            return None
        start = message.text.find(owner, candidate.start, candidate.end)
        if start == -1:
            start = candidate.start
        owner_candidate = EntityCandidate(
            surface=owner,
            start=start,
            end=start + len(owner),
            type="person",
            message_id=message.id,
            confidence=candidate.confidence,
        )
        (resolved,) = self.resolve_candidates([owner_candidate])
        person = self.entities[resolved.entity_id]
        _add_surname_variants(person)
        _add_author_variants(work, person.name, _surname(person.name))
        return self._build_mention(message, owner, owner_candidate.start, owner_candidate.end, person.id)

    def _enrich_from_cooccurrence(self, mentions: list[Mention]) -> None:
        """Tie works to the nearest person mentioned in the same message."""

        persons = [m for m in mentions if self.entities[m.entity_id].type == "person"]
        works = [m for m in mentions if self.entities[m.entity_id].type in WORK_LIKE_TYPES]
        for work in works:
            nearest: Mention | None = None
            best_distance: int | None = None
            for person in persons:
                distance = abs(person.start - work.start)
                if best_distance is None or distance < best_distance:
                    nearest, best_distance = person, distance
            if nearest is None or best_distance is None or best_distance > COOCCURRENCE_DISTANCE:
                continue
            full = self.entities[nearest.entity_id].name
            surname = _surname(full)
            entity = self.entities[work.entity_id]
            for variant in (
                f"{surname}'s book",
                f"{surname} book",
                f"{surname}'s work",
                f"{surname} work",
                f"{surname}'s novel",
                f"{surname} novel",
                f"{full}'s book",
                f"{full} book",
                f"{full}'s work",
                f"{full} work",
            ):
                entity.add_alt_name(variant)

    # Lookups

    def message_created_at(self, message_id: str) -> str | None:
        """Creation time of an indexed message, if known."""

        with self._lock:
            known = self._message_times.get(message_id)
            if known is not None:
                return known
            mentions = self.mentions_by_message.get(message_id)
            if mentions:
                return min((m.created_at for m in mentions), key=created_at_key)
            return None

    def get_latest_prior_mention(self, entity_id: str, current_message_id: str) -> Mention | None:
        """Closest earlier mention of an entity relative to the current message.

        Uses creation timestamps when the current message is indexed. Otherwise
        falls back to message id ordering, then to the latest mention.
        """

        with self._lock:
            mentions = list(self.mentions_by_entity.get(entity_id) or [])
            current_created = self.message_created_at(current_message_id)
        if not mentions:
            return None
        if current_created is not None:
            current_key = created_at_key(current_created)
            prior: Mention | None = None
            for mention in mentions:
                if created_at_key(mention.created_at) < current_key:
                    prior = mention
            if prior is not None:
                return prior
        earlier = [m for m in mentions if m.message_id < current_message_id]
        if earlier:
            return earlier[-1]
        return mentions[-1]

    def get_all_mentions(self, entity_id: str) -> list[Mention]:
        with self._lock:
            return list(self.mentions_by_entity.get(entity_id) or [])

    def get_canonical_entity(self, entity_id: str) -> CanonicalEntity | None:
        with self._lock:
            return self.entities.get(entity_id)

    def get_mentions_by_message(self, message_id: str) -> list[Mention]:
        with self._lock:
            return list(self.mentions_by_message.get(message_id) or [])

    def match_known_entities_in_text(self, text: str) -> list[tuple[str, str, int, int]]:
        """Find known names/alt names in arbitrary text.

        Returns ``(entity_id, surface, start, end)`` tuples, non-overlapping,
        ordered left to right. Longer names are placed first; among names of
        equal length the higher-priority entity type wins.
        """

        if not text:
            return []
        entries: list[tuple[str, str, int]] = []
        with self._lock:
            for entity in self.entities.values():
                seen: set[str] = set()
                for name in entity.all_names():
                    cleaned = name.strip()
                    if len(cleaned) >= 3 and cleaned not in seen:
                        seen.add(cleaned)
                        entries.append((entity.id, cleaned, type_priority(entity.type)))
        entries.sort(key=lambda entry: (-len(entry[1]), entry[2]))

        lower = text.lower()
        used: list[tuple[int, int]] = []
        results: list[tuple[str, str, int, int]] = []
        for entity_id, name, _ in entries:
            needle = name.lower()
            pos = lower.find(needle)
            while pos != -1 and len(results) < MAX_KNOWN_MATCHES:
                end = pos + len(needle)
                if all(end <= s or pos >= e for s, e in used):
                    results.append((entity_id, text[pos:end], pos, end))
                    used.append((pos, end))
                pos = lower.find(needle, end)
            if len(results) >= MAX_KNOWN_MATCHES:
                break
        results.sort(key=lambda row: row[2])
        return results

    # Persistence

    def to_payload(self) -> dict[str, Any]:
        with self._lock:
            return {
                "entities": {entity_id: entity.to_payload() for entity_id, entity in self.entities.items()},
                "mentionsByEntity": {
                    entity_id: [m.to_payload() for m in mentions]
                    for entity_id, mentions in self.mentions_by_entity.items()
                },
                "mentionsByMessage": {
                    message_id: [m.to_payload() for m in mentions]
                    for message_id, mentions in self.mentions_by_message.items()
                },
            }

    def load_payload(self, payload: dict[str, Any]) -> None:
        """Replace in-memory state with a serialized index."""

        entities = {
            str(entity_id): CanonicalEntity.from_payload(raw)
            for entity_id, raw in (payload.get("entities") or {}).items()
        }
        by_entity = {
            str(entity_id): [Mention.from_payload(raw) for raw in rows]
            for entity_id, rows in (payload.get("mentionsByEntity") or {}).items()
        }
        by_message = {
            str(message_id): [Mention.from_payload(raw) for raw in rows]
            for message_id, rows in (payload.get("mentionsByMessage") or {}).items()
        }
        with self._lock:
            self.entities = entities
            self.mentions_by_entity = by_entity
            self.mentions_by_message = by_message
            self._message_times = {
                message_id: mentions[0].created_at for message_id, mentions in by_message.items() if mentions
            }

    def hydrate(self) -> bool:
        """Load the cached index; an absent or malformed cache leaves an empty index."""

        if self.cache is None:
            return False
        with self._lock:
            try:
                blob = self.cache.load(self.cache_key)
                if not blob:
                    return False
                payload = json.loads(blob)
                if not isinstance(payload, dict):
                    raise ValueError("index cache payload is not an object")
                self.load_payload(payload)
            except (IndexCacheError, ValueError, KeyError, TypeError, AttributeError):
                logger.exception(
                    "entity_index.hydrate_failed conversation_id=%s key=%s",
                    self.conversation_id,
                    self.cache_key,
                )
                self.reset_state()
                return False
            logger.info(
                "entity_index.hydrated conversation_id=%s entities=%d messages=%d",
                self.conversation_id,
                len(self.entities),
                len(self.mentions_by_message),
            )
            return True

    def persist(self, *, strict: bool = False) -> bool:
        """Write the whole index to the cache; failures are logged unless ``strict``."""

        if self.cache is None:
            return False
        with self._lock:
            blob = json.dumps(self.to_payload(), ensure_ascii=False)
            try:
                self.cache.save(self.cache_key, blob)
            except IndexCacheError:
                if strict:
                    raise
                logger.exception(
                    "entity_index.persist_failed conversation_id=%s key=%s",
                    self.conversation_id,
                    self.cache_key,
                )
                return False
            return True

    def flush(self) -> bool:
        """Persist now, raising ``IndexCacheError`` on failure."""

        return self.persist(strict=True)

    def reset_state(self) -> None:
        with self._lock:
            self.entities = {}
            self.mentions_by_entity = {}
            self.mentions_by_message = {}
            self._message_times = {}

    def clear(self) -> None:
        """Drop every entity and mention, including the cached copy."""

        with self._lock:
            self.reset_state()
            if self.cache is None:
                return
            try:
                self.cache.delete(self.cache_key)
            except IndexCacheError:
                logger.exception(
                    "entity_index.clear_cache_failed conversation_id=%s key=%s",
                    self.conversation_id,
                    self.cache_key,
                )


def _surname(full_name: str) -> str:
    parts = strip_possessive(full_name).split()
    return parts[-1] if parts else full_name


def _add_surname_variants(entity: CanonicalEntity) -> None:
    last = _surname(entity.name)
    if last and _HAS_LETTER_RE.search(last):
        entity.add_alt_name(last)
        entity.add_alt_name(f"{last}'s")


def _add_author_variants(entity: CanonicalEntity, full_name: str, surname: str) -> None:
    for variant in (
        f"{surname}'s book",
        f"{surname} book",
        f"{surname}'s novel",
        f"{surname} novel",
        f"{full_name}'s book",
        f"{full_name} book",
    ):
        entity.add_alt_name(variant)
