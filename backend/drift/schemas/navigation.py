"""Entity navigation schemas."""

from pydantic import BaseModel, ConfigDict, Field


class NavigationMessageRequest(BaseModel):
    """Message the user is navigating from or towards."""

    message_id: str = Field(min_length=1)


class NavigationStateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    origin_message_id: str | None
    back_stack: list[str]
    forward_stack: list[str]


class NavigationResultRead(BaseModel):
    """Jump outcome; ``target_message_id`` is null when there is nowhere to go."""

    entity_id: str
    target_message_id: str | None
    state: NavigationStateRead
