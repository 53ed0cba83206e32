"""
SQLAlchemy Implementation of WhatsApp Message Repository.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from escalafin.domain.enums import DeliveryStatus, WhatsAppMessageType
from escalafin.domain.models.whatsapp_message import WhatsAppMessage
from escalafin.domain.repositories.whatsapp_message_repository import WhatsAppMessageRepository
from escalafin.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyWhatsAppMessageRepository(SQLAlchemyRepository[WhatsAppMessage], WhatsAppMessageRepository):
    """WhatsApp message repository implementation using SQLAlchemy."""

    def add(self, message: WhatsAppMessage) -> WhatsAppMessage:
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    def get_by_waha_id(self, waha_message_id: str) -> Optional[WhatsAppMessage]:
        return (
            self.db.query(WhatsAppMessage)
            .filter(WhatsAppMessage.waha_message_id == waha_message_id)
            .first()
        )

    def list_due_scheduled(self, now: datetime) -> List[WhatsAppMessage]:
        return (
            self.db.query(WhatsAppMessage)
            .filter(
                WhatsAppMessage.status == DeliveryStatus.PENDING,
                WhatsAppMessage.scheduled_for.isnot(None),
                WhatsAppMessage.scheduled_for <= now,
            )
            .order_by(WhatsAppMessage.scheduled_for.asc(), WhatsAppMessage.id.asc())
            .all()
        )

    def get_with_filters(
        self,
        status: Optional[DeliveryStatus] = None,
        message_type: Optional[WhatsAppMessageType] = None,
        client_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Dict[str, Any]:
        query = self.db.query(WhatsAppMessage)

        if status:
            query = query.filter(WhatsAppMessage.status == status)
        if message_type:
            query = query.filter(WhatsAppMessage.message_type == message_type)
        if client_id:
            query = query.filter(WhatsAppMessage.client_id == client_id)

        total = query.count()
        offset = (page - 1) * page_size
        items = (
            query.order_by(WhatsAppMessage.created_at.desc(), WhatsAppMessage.id.desc())
            .offset(offset)
            .limit(page_size)
            .all()
        )

        return {
            "items": items,
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": (total + page_size - 1) // page_size,
        }

    def delete_older_than(self, cutoff: datetime, statuses) -> int:
        deleted = (
            self.db.query(WhatsAppMessage)
            .filter(
                WhatsAppMessage.created_at < cutoff,
                WhatsAppMessage.status.in_(list(statuses)),
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted
