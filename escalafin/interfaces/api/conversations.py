"""Conversations API routes: inbox listing, history, staff replies, close and assign."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from escalafin.core.exceptions import EntityNotFoundException, ForbiddenException
from escalafin.infrastructure.database import get_db
from escalafin.interfaces.api.deps import get_current_user, require_admin
from escalafin.interfaces.deps import get_conversation_service
from escalafin.application.services.conversation_service import ConversationService
from escalafin.domain.enums import ConversationStatus, UserRole
from escalafin.domain.models.conversation import Conversation
from escalafin.domain.models.user import User
from escalafin.domain.schemas.conversation import (
    AssignConversationRequest,
    ConversationMessageRead,
    ConversationRead,
    SendConversationMessageRequest,
)

router = APIRouter(prefix="/api/conversations", tags=["Conversations"])


def _ensure_access(conversation: Conversation, user: User) -> None:
    # Advisors work their own inbox plus unassigned conversations
    if user.role == UserRole.ADVISOR and conversation.assigned_to_id not in (None, user.id):
        raise ForbiddenException("La conversación está asignada a otro asesor")


def _to_read(conversation: Conversation, service: ConversationService) -> ConversationRead:
    item = ConversationRead.model_validate(conversation)
    last = service.conversation_repo.get_last_message(conversation.id)
    if last is not None:
        item.last_message = ConversationMessageRead.model_validate(last)
    return item


@router.get("", response_model=list[ConversationRead])
def list_conversations(
    status: Optional[ConversationStatus] = None,
    assigned_to_id: Optional[int] = Query(None, alias="assignedToId"),
    client_id: Optional[int] = Query(None, alias="clientId"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: ConversationService = Depends(get_conversation_service),
    user: User = Depends(get_current_user),
):
    # Advisors see their own queue plus conversations nobody has picked up
    is_advisor = user.role == UserRole.ADVISOR
    if is_advisor:
        assigned_to_id = user.id

    conversations = service.list_conversations(
        status=status,
        assigned_to_id=assigned_to_id,
        include_unassigned=is_advisor,
        client_id=client_id,
        limit=limit,
        offset=offset,
    )
    return [_to_read(c, service) for c in conversations]


@router.get("/{conversation_id}", response_model=ConversationRead)
def get_conversation(
    conversation_id: int,
    service: ConversationService = Depends(get_conversation_service),
    user: User = Depends(get_current_user),
):
    conversation = service.get(conversation_id)
    _ensure_access(conversation, user)
    return _to_read(conversation, service)


@router.get("/{conversation_id}/messages", response_model=list[ConversationMessageRead])
def list_messages(
    conversation_id: int,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: ConversationService = Depends(get_conversation_service),
    user: User = Depends(get_current_user),
):
    _ensure_access(service.get(conversation_id), user)
    messages = service.list_messages(conversation_id, limit=limit, offset=offset)
    return [ConversationMessageRead.model_validate(m) for m in messages]


@router.post("/{conversation_id}/send", response_model=ConversationMessageRead)
async def send_message(
    conversation_id: int,
    body: SendConversationMessageRequest,
    service: ConversationService = Depends(get_conversation_service),
    user: User = Depends(get_current_user),
):
    _ensure_access(service.get(conversation_id), user)
    message = await service.send_message(conversation_id, body.content, user.id)
    return ConversationMessageRead.model_validate(message)


@router.post("/{conversation_id}/close", response_model=ConversationRead)
def close_conversation(
    conversation_id: int,
    service: ConversationService = Depends(get_conversation_service),
    user: User = Depends(get_current_user),
):
    _ensure_access(service.get(conversation_id), user)
    return _to_read(service.close(conversation_id), service)


@router.post("/{conversation_id}/assign", response_model=ConversationRead)
def assign_conversation(
    conversation_id: int,
    body: AssignConversationRequest,
    db: Session = Depends(get_db),
    service: ConversationService = Depends(get_conversation_service),
    admin: User = Depends(require_admin),
):
    target = db.get(User, body.user_id)
    if target is None or not target.is_active:
        raise EntityNotFoundException("Usuario no encontrado", details={"user_id": body.user_id})
    return _to_read(service.assign(conversation_id, target.id), service)
