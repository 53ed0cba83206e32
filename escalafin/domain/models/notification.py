"""In-app notification for staff users."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from escalafin.domain.enums import NotificationType
from escalafin.domain.models.types import enum_column_type, utcnow
from escalafin.infrastructure.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(enum_column_type(NotificationType), nullable=False)
    title = Column(String(300), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(Text, nullable=True)  # JSON string
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Notification {self.type} user={self.user_id}>"
