"""Conversation and ConversationMessage: two-way WhatsApp threads with clients."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import relationship

from escalafin.domain.enums import (
    ConversationMessageStatus,
    ConversationStatus,
    MessageContentType,
    MessageDirection,
)
from escalafin.domain.models.types import enum_column_type, utcnow
from escalafin.infrastructure.database import Base


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    phone = Column(String(30), nullable=False)
    status = Column(
        enum_column_type(ConversationStatus),
        nullable=False,
        default=ConversationStatus.ACTIVE,
    )
    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    last_message_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    client = relationship("Client")
    messages = relationship(
        "ConversationMessage",
        back_populates="conversation",
        order_by="ConversationMessage.created_at",
    )

    __table_args__ = (
        # At most one ACTIVE conversation per client
        Index(
            "uq_conversations_active_client",
            "client_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    def __repr__(self):
        return f"<Conversation {self.id} client={self.client_id} {self.status}>"


class ConversationMessage(Base):
    __tablename__ = "conversation_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), nullable=False, index=True)
    direction = Column(enum_column_type(MessageDirection), nullable=False)
    content = Column(Text, nullable=False, default="")
    message_type = Column(
        enum_column_type(MessageContentType),
        nullable=False,
        default=MessageContentType.TEXT,
    )
    media_url = Column(String(1000), nullable=True)
    status = Column(
        enum_column_type(ConversationMessageStatus),
        nullable=False,
        default=ConversationMessageStatus.PENDING,
    )
    external_message_id = Column(String(200), nullable=True, index=True)
    sent_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    conversation = relationship("Conversation", back_populates="messages")

    def __repr__(self):
        return f"<ConversationMessage {self.id} {self.direction} {self.status}>"
