"""Entity detection and mention lookup routes."""

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from drift.extraction.detector import detect_entities
from drift.routers.dependencies import get_session_registry
from drift.schemas.common import ApiResponse
from drift.schemas.entity import (
    CanonicalEntityRead,
    EntityCandidateRead,
    KnownEntityMatchRead,
    MentionRead,
    TextQuery,
)
from drift.services.entity_index import ConversationEntityIndex
from drift.services.sessions import SessionRegistry


router = APIRouter(prefix="/conversations/{conversation_id}/entities")


def _require_entity(index: ConversationEntityIndex, entity_id: str) -> None:
    if index.get_canonical_entity(entity_id) is None:
        raise HTTPException(status_code=404, detail="Entity not found")


@router.post("/detect", response_model=ApiResponse[list[EntityCandidateRead]])
def detect(
    payload: TextQuery,
    conversation_id: str = Path(..., min_length=1),
) -> ApiResponse[list[EntityCandidateRead]]:
    """Run candidate detection on ad-hoc text without touching the index."""

    candidates = detect_entities(payload.text, payload.message_id)
    return ApiResponse(data=[EntityCandidateRead.model_validate(candidate) for candidate in candidates])


@router.post("/match", response_model=ApiResponse[list[KnownEntityMatchRead]])
def match_known(
    payload: TextQuery,
    conversation_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[list[KnownEntityMatchRead]]:
    """Find already-known entity names in text."""

    rows = registry.get(conversation_id).entity_index.match_known_entities_in_text(payload.text)
    return ApiResponse(
        data=[
            KnownEntityMatchRead(entity_id=entity_id, surface=surface, start=start, end=end)
            for entity_id, surface, start, end in rows
        ]
    )


@router.get("/{entity_id}", response_model=ApiResponse[CanonicalEntityRead])
def get_entity(
    conversation_id: str = Path(..., min_length=1),
    entity_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[CanonicalEntityRead]:
    """Return one canonical entity."""

    entity = registry.get(conversation_id).entity_index.get_canonical_entity(entity_id)
    if entity is None:
        raise HTTPException(status_code=404, detail="Entity not found")
    return ApiResponse(data=CanonicalEntityRead.model_validate(entity))


@router.get("/{entity_id}/mentions", response_model=ApiResponse[list[MentionRead]])
def get_entity_mentions(
    conversation_id: str = Path(..., min_length=1),
    entity_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[list[MentionRead]]:
    """List every mention of an entity in creation order."""

    index = registry.get(conversation_id).entity_index
    _require_entity(index, entity_id)
    return ApiResponse(data=[MentionRead.model_validate(mention) for mention in index.get_all_mentions(entity_id)])


@router.get("/{entity_id}/prior", response_model=ApiResponse[MentionRead | None])
def get_prior_mention(
    conversation_id: str = Path(..., min_length=1),
    entity_id: str = Path(..., min_length=1),
    message_id: str = Query(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[MentionRead | None]:
    """Return the closest earlier mention relative to ``message_id``."""

    index = registry.get(conversation_id).entity_index
    _require_entity(index, entity_id)
    mention = index.get_latest_prior_mention(entity_id, message_id)
    return ApiResponse(data=MentionRead.model_validate(mention) if mention is not None else None)
