"""Whole-document cache backends for conversation entity indexes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from drift.models.conversation_index_cache import ConversationIndexCache


class IndexCacheError(RuntimeError):
    """Raised when a cache backend cannot read or write a document."""


class IndexCache(Protocol):
    """Key/value store holding one serialized index per conversation."""

    def load(self, key: str) -> str | None:
        """Return the stored blob or ``None``."""

    def save(self, key: str, blob: str) -> None:
        """Replace the stored blob."""

    def delete(self, key: str) -> None:
        """Remove the stored blob if present."""


def cache_key(prefix: str, conversation_id: str) -> str:
    """Namespace a conversation id under the cache prefix."""

    return f"{prefix}:{conversation_id}"


@dataclass(slots=True)
class MemoryIndexCache:
    """Process-local cache used in tests and offline mode."""

    blobs: dict[str, str] = field(default_factory=dict)

    def load(self, key: str) -> str | None:
        return self.blobs.get(key)

    def save(self, key: str, blob: str) -> None:
        self.blobs[key] = blob

    def delete(self, key: str) -> None:
        self.blobs.pop(key, None)


class SqlIndexCache:
    """Cache backed by the ``conversation_index_cache`` table.

    Each call opens and closes its own session so the cache can outlive any
    single request.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def load(self, key: str) -> str | None:
        db = self.session_factory()
        try:
            row = db.scalar(select(ConversationIndexCache).where(ConversationIndexCache.cache_key == key))
            return row.payload if row is not None else None
        except SQLAlchemyError as exc:
            raise IndexCacheError(f"Failed to load index cache {key}") from exc
        finally:
            db.close()

    def save(self, key: str, blob: str) -> None:
        db = self.session_factory()
        try:
            row = db.scalar(select(ConversationIndexCache).where(ConversationIndexCache.cache_key == key))
            if row is None:
                db.add(ConversationIndexCache(cache_key=key, payload=blob))
            else:
                row.payload = blob
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise IndexCacheError(f"Failed to save index cache {key}") from exc
        finally:
            db.close()

    def delete(self, key: str) -> None:
        db = self.session_factory()
        try:
            db.execute(delete(ConversationIndexCache).where(ConversationIndexCache.cache_key == key))
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise IndexCacheError(f"Failed to delete index cache {key}") from exc
        finally:
            db.close()
