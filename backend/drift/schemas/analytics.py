"""Analytics event schema."""

from pydantic import BaseModel, Field

from drift.services.analytics import AnalyticsEvent


class AnalyticsEventCreate(BaseModel):
    """UI event reported by the client."""

    event: AnalyticsEvent
    conversation_id: str | None = None
    entity_id: str | None = None
    message_id: str | None = None
    count: int | None = Field(default=None, ge=0)


class AnalyticsEventResult(BaseModel):
    emitted: bool
