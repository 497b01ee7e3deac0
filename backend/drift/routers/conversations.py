"""Message indexing and index maintenance routes."""

from fastapi import APIRouter, Depends, HTTPException, Path

from drift.routers.dependencies import get_session_registry
from drift.schemas.common import ApiResponse, OperationStatus
from drift.schemas.entity import MentionRead
from drift.schemas.lists import ListRecordRead
from drift.schemas.message import ChatMessageIndex, IndexedMessageRead
from drift.services.index_cache import IndexCacheError
from drift.services.sessions import SessionRegistry


router = APIRouter(prefix="/conversations/{conversation_id}")


@router.post("/messages/index", response_model=ApiResponse[IndexedMessageRead])
def index_message(
    payload: ChatMessageIndex,
    conversation_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[IndexedMessageRead]:
    """Index a new or updated message through the entity and list pipelines."""

    session = registry.get(conversation_id)
    indexed = session.index_message(payload.to_chat_message())
    return ApiResponse(
        data=IndexedMessageRead(
            conversation_id=conversation_id,
            message_id=payload.id,
            mentions=[MentionRead.model_validate(mention) for mention in indexed.mentions],
            list_record=(
                ListRecordRead.model_validate(indexed.list_record) if indexed.list_record is not None else None
            ),
        )
    )


@router.get("/messages/{message_id}/mentions", response_model=ApiResponse[list[MentionRead]])
def get_message_mentions(
    conversation_id: str = Path(..., min_length=1),
    message_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[list[MentionRead]]:
    """List mentions recorded for one message, ordered by offset."""

    mentions = registry.get(conversation_id).entity_index.get_mentions_by_message(message_id)
    return ApiResponse(data=[MentionRead.model_validate(mention) for mention in mentions])


@router.post("/index/flush", response_model=ApiResponse[OperationStatus])
def flush_index(
    conversation_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[OperationStatus]:
    """Persist the entity index now."""

    try:
        persisted = registry.get(conversation_id).entity_index.flush()
    except IndexCacheError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return ApiResponse(
        data=OperationStatus(conversation_id=conversation_id, status="flushed" if persisted else "no_cache")
    )


@router.delete("/index", response_model=ApiResponse[OperationStatus])
def clear_index(
    conversation_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[OperationStatus]:
    """Drop every entity, mention and list of the conversation."""

    registry.get(conversation_id).reset()
    return ApiResponse(data=OperationStatus(conversation_id=conversation_id, status="cleared"))
