"""Closed enumerations shared by models, schemas and services."""

import enum


class ConversationStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"


class MessageDirection(str, enum.Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


class MessageContentType(str, enum.Enum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    DOCUMENT = "DOCUMENT"
    AUDIO = "AUDIO"
    VIDEO = "VIDEO"
    LOCATION = "LOCATION"

    @classmethod
    def from_webhook(cls, value: str | None) -> "MessageContentType":
        """Map the lower-case webhook type ('text', 'image', ...) to a member; unknown -> TEXT."""
        if not value:
            return cls.TEXT
        try:
            return cls(value.upper())
        except ValueError:
            return cls.TEXT


class ConversationMessageStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class TriggerType(str, enum.Enum):
    KEYWORD = "KEYWORD"
    REGEX = "REGEX"


class WhatsAppMessageType(str, enum.Enum):
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYMENT_REMINDER = "PAYMENT_REMINDER"
    LOAN_APPROVED = "LOAN_APPROVED"
    LOAN_UPDATE = "LOAN_UPDATE"
    MARKETING = "MARKETING"
    CUSTOM = "CUSTOM"


class DeliveryStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    READ = "READ"
    FAILED = "FAILED"


TERMINAL_DELIVERY_STATUSES = (
    DeliveryStatus.SENT,
    DeliveryStatus.DELIVERED,
    DeliveryStatus.READ,
    DeliveryStatus.FAILED,
)


class LoanStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PAID_OFF = "PAID_OFF"
    DEFAULTED = "DEFAULTED"
    CANCELLED = "CANCELLED"


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    ADVISOR = "advisor"


class NotificationType(str, enum.Enum):
    CHATBOT_ESCALATION = "CHATBOT_ESCALATION"
    SYSTEM_ALERT = "SYSTEM_ALERT"
