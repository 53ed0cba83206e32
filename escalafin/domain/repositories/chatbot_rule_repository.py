"""
Chatbot Rule Repository Interface.
"""

from typing import List

from escalafin.domain.repositories.base import BaseRepository
from escalafin.domain.models.chatbot_rule import ChatbotRule


class ChatbotRuleRepository(BaseRepository[ChatbotRule]):
    """Interface for ChatbotRule-specific operations."""

    def list_active_by_priority(self) -> List[ChatbotRule]:
        """Active rules, highest priority first."""
        ...
