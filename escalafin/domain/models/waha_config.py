"""WAHA provider configuration: one active row selects the session used for sending."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from escalafin.infrastructure.database import Base


class WahaConfig(Base):
    __tablename__ = "waha_config"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(100), nullable=False)
    api_key = Column(String(255), nullable=True)
    base_url = Column(String(500), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<WahaConfig {self.session_id} @ {self.base_url}>"
