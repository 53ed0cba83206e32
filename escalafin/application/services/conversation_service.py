"""Conversation service: two-way WhatsApp conversations with clients.

Handles:
- Locating or opening the ACTIVE conversation for an inbound phone number
- Recording inbound and outbound messages
- Chatbot auto-responses
- Staff replies, assignment and closing
"""

import re
from dataclasses import dataclass
from typing import List, Optional

import structlog
from sqlalchemy.exc import IntegrityError

from escalafin.core.exceptions import AppError, EntityNotFoundException
from escalafin.domain.enums import (
    ConversationMessageStatus,
    ConversationStatus,
    MessageContentType,
    MessageDirection,
    WhatsAppMessageType,
)
from escalafin.domain.models.conversation import Conversation, ConversationMessage
from escalafin.domain.models.types import utcnow
from escalafin.domain.repositories.client_repository import ClientRepository
from escalafin.domain.repositories.conversation_repository import ConversationRepository
from escalafin.application.services.rule_matcher import RuleMatcher
from escalafin.application.services.whatsapp_gateway import WhatsAppGateway

logger = structlog.get_logger(__name__)

PHONE_MATCH_DIGITS = 10


@dataclass
class IncomingMessage:
    sender: str
    body: str
    media_url: Optional[str] = None
    message_type: MessageContentType = MessageContentType.TEXT
    waha_message_id: Optional[str] = None


@dataclass
class IncomingResult:
    conversation: Conversation
    message: ConversationMessage
    reply: Optional[ConversationMessage] = None


def normalize_phone(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


class ConversationService:
    def __init__(
        self,
        conversation_repo: ConversationRepository,
        client_repo: ClientRepository,
        matcher: RuleMatcher,
        gateway: WhatsAppGateway,
    ):
        self.conversation_repo = conversation_repo
        self.client_repo = client_repo
        self.matcher = matcher
        self.gateway = gateway

    # -- store -------------------------------------------------------------

    def get_or_create(self, phone: str) -> Conversation:
        """The client's ACTIVE conversation, opening one on first contact."""
        normalized = normalize_phone(phone)
        client = self.client_repo.find_by_phone_suffix(normalized[-PHONE_MATCH_DIGITS:])
        if client is None:
            raise EntityNotFoundException(
                f"Cliente no encontrado para el teléfono {phone}",
                {"phone": normalized},
            )

        conversation = self.conversation_repo.get_active_for_client(client.id)
        if conversation is not None:
            return conversation

        try:
            conversation = self.conversation_repo.create_active(client.id, normalized)
        except IntegrityError:
            # Another request opened it first
            self.conversation_repo.rollback()
            conversation = self.conversation_repo.get_active_for_client(client.id)
            if conversation is None:
                raise
            return conversation

        logger.info("Conversation opened", conversation_id=conversation.id, client_id=client.id)
        return conversation

    def get(self, conversation_id: int) -> Conversation:
        conversation = self.conversation_repo.get_by_id(conversation_id)
        if conversation is None:
            raise EntityNotFoundException("Conversación no encontrada", {"conversation_id": conversation_id})
        return conversation

    def append_message(
        self,
        conversation: Conversation,
        direction: MessageDirection,
        content: str,
        message_type: MessageContentType = MessageContentType.TEXT,
        media_url: Optional[str] = None,
        status: ConversationMessageStatus = ConversationMessageStatus.PENDING,
        external_message_id: Optional[str] = None,
        sent_by: Optional[int] = None,
    ) -> ConversationMessage:
        """Insert a message and bump the conversation's last activity to its timestamp."""
        now = utcnow()
        message = ConversationMessage(
            conversation_id=conversation.id,
            direction=direction,
            content=content or "",
            message_type=message_type,
            media_url=media_url,
            status=status,
            external_message_id=external_message_id,
            sent_by=sent_by,
            created_at=now,
            delivered_at=now if status == ConversationMessageStatus.DELIVERED else None,
        )
        conversation.last_message_at = now
        return self.conversation_repo.add_message(message)

    def close(self, conversation_id: int) -> Conversation:
        conversation = self.get(conversation_id)
        conversation.status = ConversationStatus.RESOLVED
        self.conversation_repo.save(conversation)
        logger.info("Conversation closed", conversation_id=conversation_id)
        return conversation

    def assign(self, conversation_id: int, user_id: int) -> Conversation:
        conversation = self.get(conversation_id)
        conversation.assigned_to_id = user_id
        self.conversation_repo.save(conversation)
        logger.info("Conversation assigned", conversation_id=conversation_id, user_id=user_id)
        return conversation

    def list_conversations(
        self,
        status: Optional[ConversationStatus] = None,
        assigned_to_id: Optional[int] = None,
        client_id: Optional[int] = None,
        include_unassigned: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Conversation]:
        return self.conversation_repo.list_with_filters(
            status=status,
            assigned_to_id=assigned_to_id,
            client_id=client_id,
            include_unassigned=include_unassigned,
            limit=limit,
            offset=offset,
        )

    def list_messages(self, conversation_id: int, limit: int = 100, offset: int = 0) -> List[ConversationMessage]:
        self.get(conversation_id)
        return self.conversation_repo.list_messages(conversation_id, limit=limit, offset=offset)

    # -- pipeline ----------------------------------------------------------

    async def handle_incoming_message(self, incoming: IncomingMessage) -> IncomingResult:
        """Record an inbound message and send the chatbot's answer, if any."""
        logger.info("Inbound WhatsApp message", sender=incoming.sender, body=(incoming.body or "")[:100])

        conversation = self.get_or_create(incoming.sender)
        message = self.append_message(
            conversation,
            MessageDirection.INBOUND,
            incoming.body,
            message_type=incoming.message_type,
            media_url=incoming.media_url,
            status=ConversationMessageStatus.DELIVERED,
            external_message_id=incoming.waha_message_id,
        )

        result = IncomingResult(conversation=conversation, message=message)

        auto_response = self.matcher.evaluate(incoming.body or "", conversation.client_id)
        if auto_response:
            result.reply = await self.send_message(conversation.id, auto_response, None)

        return result

    async def send_message(self, conversation_id: int, content: str, user_id: Optional[int]) -> ConversationMessage:
        """Send a text in a conversation; the message ends SENT or FAILED."""
        conversation = self.get(conversation_id)
        message = self.append_message(
            conversation,
            MessageDirection.OUTBOUND,
            content,
            sent_by=user_id,
        )

        try:
            record = await self.gateway.send_text(
                conversation.client_id,
                conversation.phone,
                content,
                WhatsAppMessageType.CUSTOM,
            )
        except AppError:
            message.status = ConversationMessageStatus.FAILED
            self.conversation_repo.save(message)
            raise

        message.status = ConversationMessageStatus.SENT
        message.external_message_id = record.waha_message_id
        message.sent_at = record.sent_at or utcnow()
        self.conversation_repo.save(message)
        logger.info("Conversation message sent", conversation_id=conversation_id, message_id=message.id)
        return message
