"""WhatsApp message log: every outbound send attempted through WAHA."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from escalafin.domain.enums import DeliveryStatus, WhatsAppMessageType
from escalafin.domain.models.types import enum_column_type, utcnow
from escalafin.infrastructure.database import Base


class WhatsAppMessage(Base):
    __tablename__ = "whatsapp_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    phone = Column(String(50), nullable=False)  # full chat id, e.g. 524421234567@c.us
    message = Column(Text, nullable=False, default="")
    media_url = Column(String(1000), nullable=True)
    message_type = Column(enum_column_type(WhatsAppMessageType), nullable=False, default=WhatsAppMessageType.CUSTOM)
    status = Column(enum_column_type(DeliveryStatus), nullable=False, default=DeliveryStatus.PENDING, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=True)
    waha_message_id = Column(String(200), nullable=True, index=True)
    waha_response = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    scheduled_for = Column(DateTime(timezone=True), nullable=True, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self):
        return f"<WhatsAppMessage {self.id} {self.phone} - {self.status}>"
