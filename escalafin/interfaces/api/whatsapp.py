"""WhatsApp API routes: notifications, message log, provider session and configuration."""

from datetime import datetime
from typing import Optional

import pytz
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from escalafin.config import get_settings
from escalafin.infrastructure.database import get_db
from escalafin.interfaces.api.deps import get_current_user, require_admin
from escalafin.interfaces.deps import get_gateway, get_message_repository, get_notification_service
from escalafin.application.services.notification_service import NotificationOptions, WhatsAppNotificationService
from escalafin.application.services.whatsapp_gateway import WhatsAppGateway
from escalafin.domain.enums import DeliveryStatus, WhatsAppMessageType
from escalafin.domain.models.user import User
from escalafin.domain.models.waha_config import WahaConfig
from escalafin.domain.schemas.whatsapp import (
    SendNotificationRequest,
    WahaConfigRead,
    WahaConfigUpdate,
    WhatsAppMessageRead,
)
from escalafin.infrastructure.repositories.whatsapp_message_repository import SQLAlchemyWhatsAppMessageRepository

settings = get_settings()
tz = pytz.timezone(settings.TIMEZONE)
router = APIRouter(prefix="/api/whatsapp", tags=["WhatsApp"])

REQUIRED_IDS = {
    "payment_received": "payment_id",
    "payment_reminder": "loan_id",
    "loan_approved": "loan_id",
    "custom": "client_id",
    "marketing": "client_id",
}


def _config_read(config: WahaConfig) -> WahaConfigRead:
    return WahaConfigRead(
        id=config.id,
        session_id=config.session_id,
        base_url=config.base_url,
        has_api_key=bool(config.api_key),
        is_active=config.is_active,
        updated_at=config.updated_at,
    )


@router.post("/send-notification")
async def send_notification(
    body: SendNotificationRequest,
    service: WhatsAppNotificationService = Depends(get_notification_service),
    user: User = Depends(get_current_user),
):
    """Send (or schedule) one WhatsApp notification for a loan-servicing event."""
    required = REQUIRED_IDS[body.type]
    if getattr(body, required) is None:
        raise HTTPException(status_code=400, detail=f"{required} es requerido para {body.type}")

    options = NotificationOptions(
        schedule_for=body.schedule_for,
        skip_if_disabled=body.skip_if_disabled,
        include_media=body.include_media,
        media_url=body.media_url,
    )

    if body.type == "payment_received":
        return await service.send_payment_received(body.payment_id, options)
    if body.type == "payment_reminder":
        return await service.send_payment_reminder(body.loan_id, options)
    if body.type == "loan_approved":
        return await service.send_loan_approved(body.loan_id, options)

    if not body.custom_message:
        raise HTTPException(status_code=400, detail="custom_message es requerido")
    message_type = WhatsAppMessageType.MARKETING if body.type == "marketing" else WhatsAppMessageType.CUSTOM
    return await service.send_custom(body.client_id, body.custom_message, message_type, options)


@router.get("/messages")
def list_messages(
    status: Optional[DeliveryStatus] = None,
    message_type: Optional[WhatsAppMessageType] = Query(None, alias="messageType"),
    client_id: Optional[int] = Query(None, alias="clientId"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    repo: SQLAlchemyWhatsAppMessageRepository = Depends(get_message_repository),
    user: User = Depends(get_current_user),
):
    result = repo.get_with_filters(
        status=status,
        message_type=message_type,
        client_id=client_id,
        page=page,
        page_size=page_size,
    )
    result["items"] = [WhatsAppMessageRead.model_validate(m) for m in result["items"]]
    return result


@router.get("/session")
async def session_status(
    gateway: WhatsAppGateway = Depends(get_gateway),
    admin: User = Depends(require_admin),
):
    """Current state of the configured WAHA session."""
    return await gateway.get_session_status()


@router.get("/config", response_model=Optional[WahaConfigRead])
def get_config(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    config = (
        db.query(WahaConfig)
        .filter(WahaConfig.is_active.is_(True))
        .order_by(WahaConfig.id.desc())
        .first()
    )
    return _config_read(config) if config else None


@router.put("/config", response_model=WahaConfigRead)
def update_config(
    body: WahaConfigUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Create or replace the active provider configuration."""
    config = (
        db.query(WahaConfig)
        .filter(WahaConfig.is_active.is_(True))
        .order_by(WahaConfig.id.desc())
        .first()
    )
    if config is None:
        config = WahaConfig(is_active=True)
        db.add(config)

    config.session_id = body.session_id
    config.base_url = body.base_url.rstrip("/")
    if body.api_key is not None:
        config.api_key = body.api_key or None
    db.commit()
    db.refresh(config)
    return _config_read(config)


@router.get("/scheduler-status")
def scheduler_status(
    user: User = Depends(get_current_user),
):
    """Get scheduler status and next run times."""
    from escalafin.scheduler.jobs import scheduler

    jobs = []
    for job in scheduler.get_jobs():
        next_run = job.next_run_time
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": next_run.strftime("%d/%m/%Y %H:%M") if next_run else "N/A",
            "next_run_iso": next_run.isoformat() if next_run else None,
        })

    return {
        "running": scheduler.running,
        "enabled": settings.SCHEDULER_ENABLED,
        "timezone": settings.TIMEZONE,
        "current_time": datetime.now(tz).strftime("%d/%m/%Y %H:%M:%S"),
        "jobs": jobs,
    }
