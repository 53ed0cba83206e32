"""
WhatsApp Message Repository Interface.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from escalafin.domain.enums import DeliveryStatus, WhatsAppMessageType
from escalafin.domain.repositories.base import BaseRepository
from escalafin.domain.models.whatsapp_message import WhatsAppMessage


class WhatsAppMessageRepository(BaseRepository[WhatsAppMessage]):
    """Interface for WhatsAppMessage-specific operations."""

    def add(self, message: WhatsAppMessage) -> WhatsAppMessage:
        """Insert and commit a message record."""
        ...

    def save(self, message: WhatsAppMessage) -> WhatsAppMessage:
        """Commit changes to a tracked record."""
        ...

    def rollback(self) -> None:
        """Discard the failed unit of work."""
        ...

    def get_by_waha_id(self, waha_message_id: str) -> Optional[WhatsAppMessage]:
        ...

    def list_due_scheduled(self, now: datetime) -> List[WhatsAppMessage]:
        """PENDING records whose scheduled_for has passed, oldest first."""
        ...

    def get_with_filters(
        self,
        status: Optional[DeliveryStatus] = None,
        message_type: Optional[WhatsAppMessageType] = None,
        client_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Dict[str, Any]:
        ...

    def delete_older_than(self, cutoff: datetime, statuses) -> int:
        ...
