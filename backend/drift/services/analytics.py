"""Opt-in UI event logging for context links."""

from __future__ import annotations

import logging
from typing import Any, Literal, get_args

from drift.config import get_settings

logger = logging.getLogger("drift.analytics")

AnalyticsEvent = Literal[
    "context_link_shown",
    "context_link_hover",
    "preview_opened",
    "preview_jump_back",
    "preview_jump_forward",
    "all_mentions_opened",
    "all_mentions_navigate",
    "disambiguation_shown",
    "wrong_link_reported",
]
ANALYTICS_EVENTS: frozenset[str] = frozenset(get_args(AnalyticsEvent))
_PAYLOAD_FIELDS = ("conversation_id", "entity_id", "message_id", "count")


def track(event: str, payload: dict[str, Any] | None = None, *, enabled: bool | None = None) -> bool:
    """Log a named UI event when analytics are switched on.

    Returns ``True`` when the event was emitted.
    """

    if enabled is None:
        enabled = get_settings().enable_analytics
    if not enabled or event not in ANALYTICS_EVENTS:
        return False
    fields = {key: value for key, value in (payload or {}).items() if key in _PAYLOAD_FIELDS and value is not None}
    logger.info("analytics.%s %s", event, " ".join(f"{key}={value}" for key, value in sorted(fields.items())))
    return True
