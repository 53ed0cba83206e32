"""WAHA webhook: receives inbound WhatsApp messages, delivery acks and session events."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError

from escalafin.core.exceptions import ConfigurationError, EntityNotFoundException, ProviderError
from escalafin.interfaces.deps import get_conversation_service, get_gateway
from escalafin.application.services.conversation_service import ConversationService, IncomingMessage
from escalafin.application.services.whatsapp_gateway import WhatsAppGateway
from escalafin.domain.enums import MessageContentType
from escalafin.domain.schemas.webhook import WahaAckPayload, WahaEvent, WahaMessagePayload

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

MESSAGE_EVENTS = {"message", "message.any"}


async def _handle_message(payload: WahaMessagePayload, service: ConversationService) -> dict:
    if payload.from_me:
        return {"status": "ignored", "reason": "outgoing"}
    if not payload.sender:
        return {"status": "ignored", "reason": "no_sender"}
    if "status@broadcast" in payload.sender:
        return {"status": "ignored", "reason": "status_broadcast"}
    if payload.sender.endswith("@g.us"):
        return {"status": "ignored", "reason": "group"}

    content_type = payload.content_type
    if not payload.body and content_type == MessageContentType.TEXT:
        return {"status": "ignored", "reason": "empty_body"}

    incoming = IncomingMessage(
        sender=payload.sender,
        # Captionless media is stored as a placeholder such as "[image]"
        body=payload.body or f"[{content_type.value.lower()}]",
        media_url=payload.resolved_media_url,
        message_type=content_type,
        waha_message_id=payload.message_id,
    )

    try:
        result = await service.handle_incoming_message(incoming)
    except EntityNotFoundException:
        logger.warning("Inbound message from unknown number", sender=payload.sender)
        return {"status": "ignored", "reason": "unknown_client"}
    except (ProviderError, ConfigurationError) as e:
        # The inbound message is already stored; only the auto reply failed
        logger.error("Auto reply failed", sender=payload.sender, error=e.message)
        return {"status": "processed", "auto_reply": "failed"}

    return {
        "status": "processed",
        "conversation_id": result.conversation.id,
        "message_id": result.message.id,
        "auto_reply": "sent" if result.reply else "none",
    }


@router.post("/waha")
async def waha_webhook(
    request: Request,
    service: ConversationService = Depends(get_conversation_service),
    gateway: WhatsAppGateway = Depends(get_gateway),
):
    """
    Receive WAHA events.
    `message` events feed the conversation pipeline; `message.ack` updates
    the delivery log; `session.status` is logged.
    """
    try:
        event = WahaEvent.model_validate(await request.json())
    except (ValueError, ValidationError):
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    payload = event.payload or {}

    if event.event in MESSAGE_EVENTS:
        try:
            message = WahaMessagePayload.model_validate(payload)
        except ValidationError:
            raise HTTPException(status_code=400, detail="Invalid message payload")
        return await _handle_message(message, service)

    if event.event == "message.ack":
        ack = WahaAckPayload.model_validate(payload)
        if ack.message_id is None or ack.ack is None:
            return {"status": "ignored", "reason": "incomplete_ack"}
        record = gateway.apply_ack(ack.message_id, ack.ack, payload)
        if record is None:
            return {"status": "ignored", "reason": "unknown_message"}
        return {"status": "processed", "message_id": record.id, "delivery_status": record.status.value}

    if event.event == "session.status":
        logger.info("WAHA session status", session=event.session, status=payload.get("status"))
        return {"status": "processed"}

    return {"status": "ignored", "event": event.event}
