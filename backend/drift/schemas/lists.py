"""List index schemas."""

from pydantic import BaseModel, ConfigDict


class ListItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_index: int
    surface: str
    anchor_id: str


class ListRecordRead(BaseModel):
    """Indexed list items of one message."""

    model_config = ConfigDict(from_attributes=True)

    message_id: str
    items: list[ListItemRead]


class ListReferenceRead(BaseModel):
    """Span in query text resolved to a list item anchor."""

    model_config = ConfigDict(from_attributes=True)

    message_id: str
    anchor_id: str
    surface: str
    start: int
    end: int
