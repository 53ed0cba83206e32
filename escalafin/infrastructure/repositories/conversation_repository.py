"""
SQLAlchemy Implementation of Conversation Repository.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_

from escalafin.domain.enums import ConversationStatus
from escalafin.domain.models.conversation import Conversation, ConversationMessage
from escalafin.domain.repositories.conversation_repository import ConversationRepository
from escalafin.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyConversationRepository(SQLAlchemyRepository[Conversation], ConversationRepository):
    """Conversation repository implementation using SQLAlchemy."""

    def get_active_for_client(self, client_id: int) -> Optional[Conversation]:
        return (
            self.db.query(Conversation)
            .filter(
                Conversation.client_id == client_id,
                Conversation.status == ConversationStatus.ACTIVE,
            )
            .order_by(Conversation.id)
            .first()
        )

    def create_active(self, client_id: int, phone: str) -> Conversation:
        conversation = Conversation(
            client_id=client_id,
            phone=phone,
            status=ConversationStatus.ACTIVE,
        )
        self.db.add(conversation)
        self.db.commit()
        self.db.refresh(conversation)
        return conversation

    def add_message(self, message: ConversationMessage) -> ConversationMessage:
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    def list_with_filters(
        self,
        status: Optional[ConversationStatus] = None,
        assigned_to_id: Optional[int] = None,
        client_id: Optional[int] = None,
        include_unassigned: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Conversation]:
        query = self.db.query(Conversation)

        if status:
            query = query.filter(Conversation.status == status)
        if assigned_to_id and include_unassigned:
            query = query.filter(
                or_(Conversation.assigned_to_id == assigned_to_id, Conversation.assigned_to_id.is_(None))
            )
        elif assigned_to_id:
            query = query.filter(Conversation.assigned_to_id == assigned_to_id)
        if client_id:
            query = query.filter(Conversation.client_id == client_id)

        return (
            query.order_by(Conversation.last_message_at.desc(), Conversation.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def list_messages(self, conversation_id: int, limit: int = 100, offset: int = 0) -> List[ConversationMessage]:
        return (
            self.db.query(ConversationMessage)
            .filter(ConversationMessage.conversation_id == conversation_id)
            .order_by(ConversationMessage.created_at.asc(), ConversationMessage.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def get_last_message(self, conversation_id: int) -> Optional[ConversationMessage]:
        return (
            self.db.query(ConversationMessage)
            .filter(ConversationMessage.conversation_id == conversation_id)
            .order_by(ConversationMessage.created_at.desc(), ConversationMessage.id.desc())
            .first()
        )

    def delete_messages_older_than(self, cutoff: datetime) -> int:
        deleted = (
            self.db.query(ConversationMessage)
            .filter(ConversationMessage.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted
