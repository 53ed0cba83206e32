"""Pydantic schemas for WhatsApp notifications, the message log and provider settings."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from escalafin.domain.enums import DeliveryStatus, WhatsAppMessageType


class SendNotificationRequest(BaseModel):
    type: Literal["payment_received", "payment_reminder", "loan_approved", "custom", "marketing"]
    client_id: Optional[int] = None
    loan_id: Optional[int] = None
    payment_id: Optional[int] = None
    custom_message: Optional[str] = None
    schedule_for: Optional[datetime] = None
    include_media: bool = False
    media_url: Optional[str] = None
    skip_if_disabled: bool = True


class WhatsAppMessageRead(BaseModel):
    id: int
    client_id: int
    phone: str
    message: str
    media_url: Optional[str] = None
    message_type: WhatsAppMessageType
    status: DeliveryStatus
    payment_id: Optional[int] = None
    loan_id: Optional[int] = None
    waha_message_id: Optional[str] = None
    error_message: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class WahaConfigUpdate(BaseModel):
    session_id: str
    base_url: str
    api_key: Optional[str] = None


class WahaConfigRead(BaseModel):
    id: int
    session_id: str
    base_url: str
    has_api_key: bool
    is_active: bool
    updated_at: Optional[datetime] = None
