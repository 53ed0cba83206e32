"""Import every model so Base.metadata knows all tables."""

from escalafin.domain.models.user import User
from escalafin.domain.models.client import Client
from escalafin.domain.models.loan import AmortizationEntry, Loan, Payment
from escalafin.domain.models.conversation import Conversation, ConversationMessage
from escalafin.domain.models.chatbot_rule import ChatbotRule
from escalafin.domain.models.whatsapp_message import WhatsAppMessage
from escalafin.domain.models.waha_config import WahaConfig
from escalafin.domain.models.notification import Notification

__all__ = [
    "User",
    "Client",
    "Loan",
    "AmortizationEntry",
    "Payment",
    "Conversation",
    "ConversationMessage",
    "ChatbotRule",
    "WhatsAppMessage",
    "WahaConfig",
    "Notification",
]
