"""Conversation sessions owning the entity index, list index and navigator."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from drift.config import Settings, get_settings
from drift.entity_resolution.types import Mention
from drift.extraction.types import ChatMessage
from drift.services.entity_index import ConversationEntityIndex
from drift.services.index_cache import IndexCache
from drift.services.lists import ListIndex, ListRecord
from drift.services.navigation import EntityNavigator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexedMessage:
    """What one message contributed to both pipelines."""

    mentions: list[Mention]
    list_record: ListRecord | None


class ConversationSession:
    """State for one open conversation."""

    def __init__(self, conversation_id: str, *, cache: IndexCache | None, settings: Settings) -> None:
        self.conversation_id = conversation_id
        self.settings = settings
        self.entity_index = ConversationEntityIndex(
            conversation_id,
            cache=cache,
            key_prefix=settings.index_cache_key_prefix,
            flush_interval=settings.index_flush_interval,
            similarity_threshold=settings.fuzzy_match_threshold,
        )
        self.list_index = ListIndex(recent_limit=settings.recent_list_limit)
        self.navigator = EntityNavigator(self.entity_index)
        self._lock = threading.Lock()

    def index_message(self, message: ChatMessage) -> IndexedMessage:
        """Run the entity pipeline (unless context links are off) and the list pipeline."""

        with self._lock:
            mentions: list[Mention] = []
            if self.settings.context_links != "off":
                mentions = self.entity_index.index_message(message)
            list_record = self.list_index.index_list_message(message.id, message.text)
        return IndexedMessage(mentions=mentions, list_record=list_record)

    def reset(self) -> None:
        """Forget entities, lists and navigation for this conversation."""

        with self._lock:
            self.entity_index.clear()
            self.list_index.clear()
            self.navigator = EntityNavigator(self.entity_index)


class SessionRegistry:
    """Open conversation sessions keyed by conversation id."""

    def __init__(self, *, cache: IndexCache | None = None, settings: Settings | None = None) -> None:
        self.cache = cache
        self.settings = settings or get_settings()
        self._sessions: dict[str, ConversationSession] = {}
        self._lock = threading.Lock()

    def get(self, conversation_id: str) -> ConversationSession:
        """Return the open session, hydrating it from the cache on first use."""

        with self._lock:
            session = self._sessions.get(conversation_id)
            if session is None:
                session = ConversationSession(conversation_id, cache=self.cache, settings=self.settings)
                session.entity_index.hydrate()
                self._sessions[conversation_id] = session
                logger.info(
                    "sessions.opened conversation_id=%s entities=%d",
                    conversation_id,
                    len(session.entity_index.entities),
                )
            return session

    def close(self, conversation_id: str) -> None:
        """Persist and drop a session."""

        with self._lock:
            session = self._sessions.pop(conversation_id, None)
        if session is not None:
            session.entity_index.persist()

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.entity_index.persist()
