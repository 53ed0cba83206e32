"""WAHA webhook payloads."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from escalafin.domain.enums import MessageContentType


class WahaMedia(BaseModel):
    url: Optional[str] = None
    mimetype: Optional[str] = None


class WahaMessagePayload(BaseModel):
    """`payload` of a WAHA `message` event."""

    id: Optional[Any] = None
    sender: str = Field(default="", alias="from")
    body: Optional[str] = ""
    from_me: bool = Field(default=False, alias="fromMe")
    has_media: bool = Field(default=False, alias="hasMedia")
    media: Optional[WahaMedia] = None
    media_url: Optional[str] = Field(default=None, alias="mediaUrl")
    message_type: Optional[str] = Field(default=None, alias="messageType")
    waha_message_id: Optional[str] = Field(default=None, alias="wahaMessageId")
    type: Optional[str] = None
    location: Optional[Dict[str, Any]] = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def message_id(self) -> Optional[str]:
        if self.waha_message_id:
            return self.waha_message_id
        if isinstance(self.id, dict):
            return self.id.get("_serialized") or self.id.get("id")
        return str(self.id) if self.id else None

    @property
    def resolved_media_url(self) -> Optional[str]:
        if self.media_url:
            return self.media_url
        return self.media.url if self.media else None

    @property
    def content_type(self) -> MessageContentType:
        if self.message_type:
            return MessageContentType.from_webhook(self.message_type)
        if self.location or self.type == "location":
            return MessageContentType.LOCATION
        mimetype = (self.media.mimetype if self.media else None) or ""
        if self.has_media or mimetype:
            if mimetype.startswith("image/"):
                return MessageContentType.IMAGE
            if mimetype.startswith("video/"):
                return MessageContentType.VIDEO
            if mimetype.startswith("audio/"):
                return MessageContentType.AUDIO
            return MessageContentType.DOCUMENT
        return MessageContentType.from_webhook(self.type)


class WahaAckPayload(BaseModel):
    """`payload` of a WAHA `message.ack` event."""

    id: Optional[Any] = None
    ack: Optional[int] = None

    model_config = {"extra": "ignore"}

    @property
    def message_id(self) -> Optional[str]:
        if isinstance(self.id, dict):
            return self.id.get("_serialized") or self.id.get("id")
        return str(self.id) if self.id else None


class WahaEvent(BaseModel):
    event: Optional[str] = None
    session: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None

    model_config = {"extra": "ignore"}
