"""Chatbot rule: configured auto-response evaluated against inbound messages."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from escalafin.domain.enums import TriggerType
from escalafin.domain.models.types import enum_column_type
from escalafin.infrastructure.database import Base


class ChatbotRule(Base):
    __tablename__ = "chatbot_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    priority = Column(Integer, nullable=False, default=0)
    trigger_type = Column(enum_column_type(TriggerType), nullable=False, default=TriggerType.KEYWORD)
    trigger = Column(Text, nullable=False)  # comma-separated keywords or a regex
    conditions = Column(Text, nullable=True)  # JSON string
    actions = Column(Text, nullable=True)  # JSON string
    response = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<ChatbotRule {self.id} {self.trigger_type} p={self.priority}>"
