"""Pydantic schemas for conversations and their messages."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from escalafin.domain.enums import (
    ConversationMessageStatus,
    ConversationStatus,
    MessageContentType,
    MessageDirection,
)


class ClientSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    phone: Optional[str] = None

    model_config = {"from_attributes": True}


class ConversationMessageRead(BaseModel):
    id: int
    conversation_id: int
    direction: MessageDirection
    content: str
    message_type: MessageContentType
    media_url: Optional[str] = None
    status: ConversationMessageStatus
    external_message_id: Optional[str] = None
    sent_by: Optional[int] = None
    created_at: datetime
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ConversationRead(BaseModel):
    id: int
    client_id: int
    phone: str
    status: ConversationStatus
    assigned_to_id: Optional[int] = None
    last_message_at: datetime
    created_at: datetime
    client: Optional[ClientSummary] = None
    last_message: Optional[ConversationMessageRead] = None

    model_config = {"from_attributes": True}


class SendConversationMessageRequest(BaseModel):
    content: str = Field(min_length=1, max_length=4096)


class AssignConversationRequest(BaseModel):
    user_id: int
