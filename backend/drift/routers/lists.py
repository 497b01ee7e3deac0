"""List-item reference routes."""

from fastapi import APIRouter, Depends, HTTPException, Path

from drift.routers.dependencies import get_session_registry
from drift.schemas.common import ApiResponse
from drift.schemas.entity import TextQuery
from drift.schemas.lists import ListRecordRead, ListReferenceRead
from drift.services.sessions import SessionRegistry


router = APIRouter(prefix="/conversations/{conversation_id}/lists")


@router.post("/match", response_model=ApiResponse[list[ListReferenceRead]])
def match_list_items(
    payload: TextQuery,
    conversation_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[list[ListReferenceRead]]:
    """Resolve item names and ordinal phrases against recent lists."""

    references = registry.get(conversation_id).list_index.match_list_items_in_text(payload.text)
    return ApiResponse(data=[ListReferenceRead.model_validate(reference) for reference in references])


@router.get("/{message_id}", response_model=ApiResponse[ListRecordRead])
def get_message_list(
    conversation_id: str = Path(..., min_length=1),
    message_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[ListRecordRead]:
    record = registry.get(conversation_id).list_index.get_list_for_message(message_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No list indexed for message")
    return ApiResponse(data=ListRecordRead.model_validate(record))
