"""Entity jump-chain routes."""

from fastapi import APIRouter, Depends, HTTPException, Path

from drift.routers.dependencies import get_session_registry
from drift.schemas.common import ApiResponse
from drift.schemas.navigation import NavigationMessageRequest, NavigationResultRead, NavigationStateRead
from drift.services.navigation import EntityNavigator
from drift.services.sessions import ConversationSession, SessionRegistry


router = APIRouter(prefix="/conversations/{conversation_id}/entities/{entity_id}/navigation")


def _navigator(registry: SessionRegistry, conversation_id: str, entity_id: str) -> EntityNavigator:
    session: ConversationSession = registry.get(conversation_id)
    if session.entity_index.get_canonical_entity(entity_id) is None:
        raise HTTPException(status_code=404, detail="Entity not found")
    return session.navigator


def _result(navigator: EntityNavigator, entity_id: str, target: str | None) -> ApiResponse[NavigationResultRead]:
    state = NavigationStateRead.model_validate(navigator.get_navigation_state(entity_id))
    return ApiResponse(data=NavigationResultRead(entity_id=entity_id, target_message_id=target, state=state))


@router.get("", response_model=ApiResponse[NavigationResultRead])
def get_state(
    conversation_id: str = Path(..., min_length=1),
    entity_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[NavigationResultRead]:
    navigator = _navigator(registry, conversation_id, entity_id)
    return _result(navigator, entity_id, None)


@router.post("/begin", response_model=ApiResponse[NavigationResultRead])
def begin_jump(
    payload: NavigationMessageRequest,
    conversation_id: str = Path(..., min_length=1),
    entity_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[NavigationResultRead]:
    """Start a jump chain from the given message."""

    navigator = _navigator(registry, conversation_id, entity_id)
    navigator.begin_entity_jump(entity_id, payload.message_id)
    return _result(navigator, entity_id, None)


@router.post("/prior", response_model=ApiResponse[NavigationResultRead])
def jump_prior(
    payload: NavigationMessageRequest,
    conversation_id: str = Path(..., min_length=1),
    entity_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[NavigationResultRead]:
    """Jump to the closest earlier mention."""

    navigator = _navigator(registry, conversation_id, entity_id)
    target = navigator.jump_to_prior(entity_id, payload.message_id)
    return _result(navigator, entity_id, target)


@router.post("/push", response_model=ApiResponse[NavigationResultRead])
def push_forward(
    payload: NavigationMessageRequest,
    conversation_id: str = Path(..., min_length=1),
    entity_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[NavigationResultRead]:
    """Remember a message to return to."""

    navigator = _navigator(registry, conversation_id, entity_id)
    navigator.push_forward(entity_id, payload.message_id)
    return _result(navigator, entity_id, None)


@router.post("/forward", response_model=ApiResponse[NavigationResultRead])
def jump_forward(
    conversation_id: str = Path(..., min_length=1),
    entity_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[NavigationResultRead]:
    navigator = _navigator(registry, conversation_id, entity_id)
    target = navigator.jump_forward(entity_id)
    return _result(navigator, entity_id, target)


@router.post("/reset", response_model=ApiResponse[NavigationResultRead])
def reset(
    conversation_id: str = Path(..., min_length=1),
    entity_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[NavigationResultRead]:
    navigator = _navigator(registry, conversation_id, entity_id)
    navigator.reset_navigation(entity_id)
    return _result(navigator, entity_id, None)
