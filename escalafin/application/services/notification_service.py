"""WhatsApp notification dispatch for loan-servicing events.

Each event checks the client's preference flags first. A disabled flag is
a logged no-op, not an error. Enabled events build their fixed message and
go out through the gateway, immediately or at `schedule_for`.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

import pytz
import structlog

from escalafin.config import get_settings
from escalafin.core.exceptions import BusinessRuleViolationException, EntityNotFoundException
from escalafin.domain.enums import WhatsAppMessageType
from escalafin.domain.models.client import Client
from escalafin.domain.repositories.client_repository import ClientRepository
from escalafin.application.services import message_templates
from escalafin.application.services.whatsapp_gateway import WhatsAppGateway

settings = get_settings()
tz = pytz.timezone(settings.TIMEZONE)
logger = structlog.get_logger(__name__)

# Client preference flag consulted for each message type
PREFERENCE_FLAGS = {
    WhatsAppMessageType.PAYMENT_RECEIVED: "whatsapp_payment_received",
    WhatsAppMessageType.PAYMENT_REMINDER: "whatsapp_payment_reminder",
    WhatsAppMessageType.LOAN_APPROVED: "whatsapp_loan_updates",
    WhatsAppMessageType.LOAN_UPDATE: "whatsapp_loan_updates",
    WhatsAppMessageType.MARKETING: "whatsapp_marketing_messages",
}


@dataclass
class NotificationOptions:
    schedule_for: Optional[datetime] = None
    skip_if_disabled: bool = True
    include_media: bool = False
    media_url: Optional[str] = None


def preference_block(client: Client, message_type: WhatsAppMessageType, options: NotificationOptions) -> Optional[str]:
    """Name of the flag that blocks this message, or None when it may be sent."""
    if (
        message_type not in (WhatsAppMessageType.CUSTOM, WhatsAppMessageType.MARKETING)
        and options.skip_if_disabled
        and not client.whatsapp_notifications_enabled
    ):
        return "whatsapp_notifications_enabled"

    flag = PREFERENCE_FLAGS.get(message_type)
    if flag and not getattr(client, flag):
        return flag
    return None


def days_overdue(due_date: date, today: date) -> int:
    return max((today - due_date).days, 0)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = tz.localize(value)
    return value.astimezone(pytz.utc)


class WhatsAppNotificationService:
    def __init__(self, client_repo: ClientRepository, gateway: WhatsAppGateway):
        self.client_repo = client_repo
        self.gateway = gateway

    async def _dispatch(
        self,
        client: Client,
        message: str,
        message_type: WhatsAppMessageType,
        options: NotificationOptions,
        payment_id: Optional[int] = None,
        loan_id: Optional[int] = None,
    ) -> dict:
        blocked_by = preference_block(client, message_type, options)
        if blocked_by:
            logger.info(
                "WhatsApp notification disabled by client preference",
                client_id=client.id,
                message_type=message_type.value,
                flag=blocked_by,
            )
            return {"status": "skipped", "reason": blocked_by, "client_id": client.id}

        if not client.phone:
            raise BusinessRuleViolationException(
                "El cliente no tiene teléfono registrado",
                {"client_id": client.id},
            )

        media_url = options.media_url if options.include_media else None

        if options.schedule_for:
            record = self.gateway.schedule(
                client.id,
                client.phone,
                message,
                scheduled_for=_to_utc(options.schedule_for),
                message_type=message_type,
                media_url=media_url,
                payment_id=payment_id,
                loan_id=loan_id,
            )
            return {"status": "scheduled", "message_id": record.id, "client_id": client.id}

        if media_url:
            record = await self.gateway.send_media(client.id, client.phone, media_url, message, message_type)
        else:
            record = await self.gateway.send_text(
                client.id,
                client.phone,
                message,
                message_type,
                payment_id=payment_id,
                loan_id=loan_id,
            )
        logger.info("WhatsApp notification sent", client_id=client.id, message_type=message_type.value)
        return {"status": "sent", "message_id": record.id, "client_id": client.id}

    async def send_payment_received(self, payment_id: int, options: Optional[NotificationOptions] = None) -> dict:
        options = options or NotificationOptions()
        payment = self.client_repo.get_payment(payment_id)
        if payment is None or payment.loan is None:
            raise EntityNotFoundException("Pago o préstamo no encontrado", {"payment_id": payment_id})

        loan = payment.loan
        client = loan.client
        message = message_templates.payment_received_message(
            client.full_name,
            payment.amount,
            loan.loan_number,
            payment.payment_date,
        )
        return await self._dispatch(
            client, message, WhatsAppMessageType.PAYMENT_RECEIVED, options,
            payment_id=payment.id, loan_id=loan.id,
        )

    async def send_payment_reminder(
        self,
        loan_id: int,
        options: Optional[NotificationOptions] = None,
        today: Optional[date] = None,
    ) -> dict:
        options = options or NotificationOptions()
        loan = self.client_repo.get_loan(loan_id)
        next_entry = self.client_repo.get_next_unpaid_entry(loan_id) if loan else None
        if loan is None or next_entry is None:
            raise EntityNotFoundException("Préstamo o cronograma de pagos no encontrado", {"loan_id": loan_id})

        today = today or datetime.now(tz).date()
        message = message_templates.payment_reminder_message(
            loan.client.full_name,
            next_entry.total_payment,
            loan.loan_number,
            next_entry.payment_date,
            days_overdue(next_entry.payment_date, today),
        )
        return await self._dispatch(
            loan.client, message, WhatsAppMessageType.PAYMENT_REMINDER, options, loan_id=loan.id,
        )

    async def send_loan_approved(self, loan_id: int, options: Optional[NotificationOptions] = None) -> dict:
        options = options or NotificationOptions()
        loan = self.client_repo.get_loan(loan_id)
        if loan is None:
            raise EntityNotFoundException("Préstamo no encontrado", {"loan_id": loan_id})

        message = message_templates.loan_approved_message(
            loan.client.full_name,
            loan.principal_amount,
            loan.loan_number,
            loan.monthly_payment,
            loan.term_months,
        )
        return await self._dispatch(
            loan.client, message, WhatsAppMessageType.LOAN_APPROVED, options, loan_id=loan.id,
        )

    async def send_custom(
        self,
        client_id: int,
        message: str,
        message_type: WhatsAppMessageType = WhatsAppMessageType.CUSTOM,
        options: Optional[NotificationOptions] = None,
    ) -> dict:
        options = options or NotificationOptions()
        client = self.client_repo.get_by_id(client_id)
        if client is None:
            raise EntityNotFoundException("Cliente no encontrado", {"client_id": client_id})
        return await self._dispatch(client, message, message_type, options)
