"""WhatsApp gateway: sends text and media through WAHA and keeps the delivery log.

Send flow:
1. Resolve the active provider configuration (ConfigurationError if none)
2. Format the chat id (digits, country code for 10-digit numbers, @c.us)
3. Persist a PENDING WhatsAppMessage so every attempt leaves a trace
4. Call WAHA once
5. SENT with provider id and raw response, or FAILED and re-raise
"""

import json
import mimetypes
import posixpath
import re
from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
import structlog

from escalafin.config import Settings, get_settings
from escalafin.core.exceptions import ConfigurationError, ProviderError
from escalafin.domain.enums import DeliveryStatus, WhatsAppMessageType
from escalafin.domain.models.types import utcnow
from escalafin.domain.models.whatsapp_message import WhatsAppMessage
from escalafin.domain.repositories.whatsapp_message_repository import WhatsAppMessageRepository
from escalafin.infrastructure.waha_api import WahaAPIClient
from escalafin.infrastructure.waha_config import WahaConfigLoader, WahaSession

logger = structlog.get_logger(__name__)

# WAHA ack codes -> delivery status
ACK_STATUS = {
    1: DeliveryStatus.SENT,
    2: DeliveryStatus.DELIVERED,
    3: DeliveryStatus.READ,
    4: DeliveryStatus.READ,
    -1: DeliveryStatus.FAILED,
}


def format_chat_id(phone: str, country_code: str = "52", suffix: str = "@c.us") -> str:
    """Turn a phone number into a WhatsApp chat id.

    "4421234567" -> "524421234567@c.us"; numbers that already carry a
    country code (anything other than exactly 10 digits) are not prefixed.
    """
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 10:
        digits = f"{country_code}{digits}"
    return f"{digits}{suffix}"


def describe_media(media_url: str) -> dict:
    """Build WAHA's `file` object from a URL, sniffing the MIME type from its extension."""
    path = urlparse(media_url).path
    filename = posixpath.basename(path)
    extension = posixpath.splitext(filename)[1].lstrip(".").lower()
    mimetype = mimetypes.guess_type(filename)[0] if filename else None
    return {
        "mimetype": mimetype or "application/octet-stream",
        "filename": filename or f"file.{extension or 'bin'}",
        "url": media_url,
    }


def extract_message_id(response: Any) -> Optional[str]:
    """Provider message id from a WAHA send response."""
    if not isinstance(response, dict):
        return None
    message_id = response.get("id")
    if isinstance(message_id, dict):
        message_id = message_id.get("_serialized") or message_id.get("id")
    if not message_id and isinstance(response.get("key"), dict):
        message_id = response["key"].get("id")
    if not message_id and response.get("timestamp"):
        message_id = str(response["timestamp"])
    return str(message_id) if message_id else None


class WhatsAppGateway:
    def __init__(
        self,
        message_repo: WhatsAppMessageRepository,
        config_loader: WahaConfigLoader,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.message_repo = message_repo
        self.config_loader = config_loader
        self.settings = settings or get_settings()
        self.transport = transport

    def _session(self) -> WahaSession:
        session = self.config_loader.load()
        if session is None:
            raise ConfigurationError()
        return session

    def _client(self, session: WahaSession) -> WahaAPIClient:
        return WahaAPIClient(
            session,
            timeout=self.settings.WAHA_TIMEOUT_SECONDS,
            transport=self.transport,
        )

    def format_chat_id(self, phone: str) -> str:
        return format_chat_id(
            phone,
            country_code=self.settings.DEFAULT_COUNTRY_CODE,
            suffix=self.settings.WHATSAPP_CHAT_SUFFIX,
        )

    # -- sending -----------------------------------------------------------

    async def send_text(
        self,
        client_id: int,
        phone: str,
        message: str,
        message_type: WhatsAppMessageType = WhatsAppMessageType.CUSTOM,
        payment_id: Optional[int] = None,
        loan_id: Optional[int] = None,
    ) -> WhatsAppMessage:
        session = self._session()
        record = self.message_repo.add(WhatsAppMessage(
            client_id=client_id,
            phone=self.format_chat_id(phone),
            message=message,
            message_type=message_type,
            status=DeliveryStatus.PENDING,
            payment_id=payment_id,
            loan_id=loan_id,
        ))
        return await self._deliver(record, session)

    async def send_media(
        self,
        client_id: int,
        phone: str,
        media_url: str,
        caption: str,
        message_type: WhatsAppMessageType = WhatsAppMessageType.CUSTOM,
    ) -> WhatsAppMessage:
        session = self._session()
        record = self.message_repo.add(WhatsAppMessage(
            client_id=client_id,
            phone=self.format_chat_id(phone),
            message=caption or "",
            media_url=media_url,
            message_type=message_type,
            status=DeliveryStatus.PENDING,
        ))
        return await self._deliver(record, session)

    def schedule(
        self,
        client_id: int,
        phone: str,
        message: str,
        scheduled_for: datetime,
        message_type: WhatsAppMessageType = WhatsAppMessageType.CUSTOM,
        media_url: Optional[str] = None,
        payment_id: Optional[int] = None,
        loan_id: Optional[int] = None,
    ) -> WhatsAppMessage:
        """Persist a PENDING message to be sent by the scheduled-messages sweep."""
        record = self.message_repo.add(WhatsAppMessage(
            client_id=client_id,
            phone=self.format_chat_id(phone),
            message=message,
            media_url=media_url,
            message_type=message_type,
            status=DeliveryStatus.PENDING,
            payment_id=payment_id,
            loan_id=loan_id,
            scheduled_for=scheduled_for,
        ))
        logger.info("WhatsApp message scheduled", message_id=record.id, scheduled_for=str(scheduled_for))
        return record

    async def deliver(self, record: WhatsAppMessage) -> WhatsAppMessage:
        """Send an existing PENDING record in place (scheduled messages)."""
        return await self._deliver(record, self._session())

    async def _deliver(self, record: WhatsAppMessage, session: WahaSession) -> WhatsAppMessage:
        client = self._client(session)
        try:
            if record.media_url:
                media = describe_media(record.media_url)
                response = await client.send_file(
                    record.phone,
                    record.message,
                    media,
                    is_image=media["mimetype"].startswith("image/"),
                )
            else:
                response = await client.send_text(record.phone, record.message)

            provider_id = extract_message_id(response)
            if not provider_id:
                raise ProviderError("WAHA no devolvió un id de mensaje", details={"response": response})
        except ProviderError as e:
            record.status = DeliveryStatus.FAILED
            record.error_message = e.message[:500]
            self.message_repo.save(record)
            logger.error(
                "WhatsApp send failed",
                message_id=record.id,
                chat_id=record.phone,
                message_type=record.message_type.value,
                error=e.message,
            )
            raise

        record.status = DeliveryStatus.SENT
        record.waha_message_id = provider_id
        record.waha_response = json.dumps(response, default=str)
        record.sent_at = utcnow()
        record.error_message = None
        self.message_repo.save(record)
        logger.info(
            "WhatsApp message sent",
            message_id=record.id,
            chat_id=record.phone,
            message_type=record.message_type.value,
            provider_id=provider_id,
        )
        return record

    # -- provider state ----------------------------------------------------

    async def get_session_status(self) -> dict:
        session = self._session()
        return await self._client(session).get_session_status()

    def apply_ack(self, waha_message_id: str, ack: int, payload: Optional[dict] = None) -> Optional[WhatsAppMessage]:
        """Record a delivery acknowledgement for a sent message."""
        record = self.message_repo.get_by_waha_id(waha_message_id)
        if record is None:
            return None

        new_status = ACK_STATUS.get(ack)
        record.waha_response = json.dumps(payload or {}, default=str)
        now = utcnow()
        if new_status == DeliveryStatus.SENT:
            record.sent_at = record.sent_at or now
        elif new_status == DeliveryStatus.DELIVERED:
            record.delivered_at = now
        elif new_status == DeliveryStatus.READ:
            record.read_at = now
        elif new_status == DeliveryStatus.FAILED:
            record.error_message = "Failed delivery reported by ACK"

        if new_status is not None:
            record.status = new_status
        self.message_repo.save(record)
        return record
