"""Client domain model: maps to the 'clients' table."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from escalafin.infrastructure.database import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(200), nullable=False)
    last_name = Column(String(200), nullable=False, default="")
    phone = Column(String(30), nullable=True, index=True)
    advisor_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # WhatsApp preferences (channel x event category)
    whatsapp_notifications_enabled = Column(Boolean, nullable=False, default=True)
    whatsapp_payment_received = Column(Boolean, nullable=False, default=True)
    whatsapp_payment_reminder = Column(Boolean, nullable=False, default=True)
    whatsapp_loan_updates = Column(Boolean, nullable=False, default=True)
    whatsapp_marketing_messages = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    loans = relationship("Loan", back_populates="client")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<Client {self.id} - {self.full_name}>"
