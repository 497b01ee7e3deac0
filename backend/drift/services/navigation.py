"""Per-entity back/forward navigation between mentions."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

from drift.services.entity_index import ConversationEntityIndex, created_at_key, mention_anchor_id

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EntityNavigationState:
    """In-memory jump chain for one entity."""

    origin_message_id: str | None = None
    back_stack: list[str] = field(default_factory=list)
    forward_stack: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class NavigationRequest:
    """Target the host UI should scroll to and highlight."""

    entity_id: str
    target_message_id: str
    anchor_id: str | None = None


NavigationListener = Callable[[NavigationRequest], None]


class EntityNavigator:
    """Navigation stacks over a conversation entity index.

    The navigator never scrolls anything itself: it returns target message
    ids and publishes ``NavigationRequest`` events to subscribers.
    """

    def __init__(self, index: ConversationEntityIndex) -> None:
        self.index = index
        self._states: dict[str, EntityNavigationState] = {}
        self._listeners: list[NavigationListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: NavigationListener) -> Callable[[], None]:
        """Register a listener; the returned callable unsubscribes it."""

        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def get_navigation_state(self, entity_id: str) -> EntityNavigationState:
        """Snapshot of the jump chain for one entity."""

        with self._lock:
            state = self._ensure(entity_id)
            return EntityNavigationState(
                origin_message_id=state.origin_message_id,
                back_stack=list(state.back_stack),
                forward_stack=list(state.forward_stack),
            )

    def begin_entity_jump(self, entity_id: str, origin_message_id: str) -> None:
        """Start a jump chain; the first origin sticks until reset."""

        with self._lock:
            state = self._ensure(entity_id)
            if state.origin_message_id is None:
                state.origin_message_id = origin_message_id
            state.forward_stack = []

    def jump_to_prior(self, entity_id: str, current_message_id: str) -> str | None:
        """Move to the closest earlier mention in another message.

        When the current message is not indexed, only a mention whose message
        id sorts before it counts as earlier.
        """

        prior = self.index.get_latest_prior_mention(entity_id, current_message_id)
        if prior is None or prior.message_id == current_message_id:
            return None
        current_created = self.index.message_created_at(current_message_id)
        if current_created is None:
            if prior.message_id >= current_message_id:
                return None
        elif created_at_key(prior.created_at) >= created_at_key(current_created):
            return None
        with self._lock:
            self._ensure(entity_id).back_stack.append(current_message_id)
        self._publish(NavigationRequest(entity_id, prior.message_id, mention_anchor_id(prior)))
        return prior.message_id

    def push_forward(self, entity_id: str, message_id: str) -> None:
        with self._lock:
            self._ensure(entity_id).forward_stack.append(message_id)

    def jump_forward(self, entity_id: str) -> str | None:
        with self._lock:
            state = self._ensure(entity_id)
            if not state.forward_stack:
                return None
            target = state.forward_stack.pop()
        self._publish(NavigationRequest(entity_id, target))
        return target

    def reset_navigation(self, entity_id: str) -> None:
        with self._lock:
            self._states[entity_id] = EntityNavigationState()

    def _ensure(self, entity_id: str) -> EntityNavigationState:
        state = self._states.get(entity_id)
        if state is None:
            state = EntityNavigationState()
            self._states[entity_id] = state
        return state

    def _publish(self, request: NavigationRequest) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(request)
            except Exception:
                logger.exception(
                    "navigation.listener_failed entity_id=%s target_message_id=%s",
                    request.entity_id,
                    request.target_message_id,
                )
