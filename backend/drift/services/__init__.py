"""Conversation-scoped engine services."""

from drift.services.entity_index import ConversationEntityIndex
from drift.services.lists import ListIndex
from drift.services.navigation import EntityNavigator, NavigationRequest
from drift.services.sessions import ConversationSession, SessionRegistry

__all__ = [
    "ConversationEntityIndex",
    "ConversationSession",
    "EntityNavigator",
    "ListIndex",
    "NavigationRequest",
    "SessionRegistry",
]
