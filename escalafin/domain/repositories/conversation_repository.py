"""
Conversation Repository Interface.
"""

from datetime import datetime
from typing import List, Optional

from escalafin.domain.enums import ConversationStatus
from escalafin.domain.repositories.base import BaseRepository
from escalafin.domain.models.conversation import Conversation, ConversationMessage


class ConversationRepository(BaseRepository[Conversation]):
    """Interface for Conversation-specific operations."""

    def get_active_for_client(self, client_id: int) -> Optional[Conversation]:
        """The client's ACTIVE conversation, if one exists."""
        ...

    def create_active(self, client_id: int, phone: str) -> Conversation:
        """Insert a new ACTIVE conversation; raises IntegrityError if one already exists."""
        ...

    def rollback(self) -> None:
        """Discard the failed unit of work."""
        ...

    def add_message(self, message: ConversationMessage) -> ConversationMessage:
        ...

    def save(self, obj) -> None:
        """Commit pending changes to a tracked object."""
        ...

    def list_with_filters(
        self,
        status: Optional[ConversationStatus] = None,
        assigned_to_id: Optional[int] = None,
        client_id: Optional[int] = None,
        include_unassigned: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Conversation]:
        """Conversations ordered by most recent activity.

        With ``include_unassigned`` the ``assigned_to_id`` filter also lets
        through conversations nobody has picked up yet.
        """
        ...

    def list_messages(self, conversation_id: int, limit: int = 100, offset: int = 0) -> List[ConversationMessage]:
        """Messages of a conversation, oldest first."""
        ...

    def get_last_message(self, conversation_id: int) -> Optional[ConversationMessage]:
        ...

    def delete_messages_older_than(self, cutoff: datetime) -> int:
        ...
