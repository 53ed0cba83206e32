"""
SQLAlchemy Implementation of Chatbot Rule Repository.
"""

from typing import List

from escalafin.domain.models.chatbot_rule import ChatbotRule
from escalafin.domain.repositories.chatbot_rule_repository import ChatbotRuleRepository
from escalafin.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyChatbotRuleRepository(SQLAlchemyRepository[ChatbotRule], ChatbotRuleRepository):
    """Chatbot rule repository implementation using SQLAlchemy."""

    def list(self, skip: int = 0, limit: int = 100) -> List[ChatbotRule]:
        return (
            self.db.query(ChatbotRule)
            .order_by(ChatbotRule.priority.desc(), ChatbotRule.id.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def list_active_by_priority(self) -> List[ChatbotRule]:
        # id breaks priority ties so evaluation order is stable
        return (
            self.db.query(ChatbotRule)
            .filter(ChatbotRule.is_active.is_(True))
            .order_by(ChatbotRule.priority.desc(), ChatbotRule.id.asc())
            .all()
        )
