"""
API Dependencies.

The ``build_*`` helpers assemble services around one database session so
the scheduler jobs can reuse the same wiring as the routers.
"""

from typing import Optional

import httpx
from fastapi import Depends
from sqlalchemy.orm import Session

from escalafin.infrastructure.database import get_db
from escalafin.domain.models.chatbot_rule import ChatbotRule
from escalafin.domain.models.client import Client
from escalafin.domain.models.conversation import Conversation
from escalafin.domain.models.notification import Notification
from escalafin.domain.models.whatsapp_message import WhatsAppMessage
from escalafin.infrastructure.repositories.base_repository import SQLAlchemyRepository
from escalafin.infrastructure.repositories.chatbot_rule_repository import SQLAlchemyChatbotRuleRepository
from escalafin.infrastructure.repositories.client_repository import SQLAlchemyClientRepository
from escalafin.infrastructure.repositories.conversation_repository import SQLAlchemyConversationRepository
from escalafin.infrastructure.repositories.whatsapp_message_repository import SQLAlchemyWhatsAppMessageRepository
from escalafin.infrastructure.waha_config import CachedWahaConfigLoader, DatabaseWahaConfigLoader, WahaConfigLoader
from escalafin.application.services.conversation_service import ConversationService
from escalafin.application.services.notification_service import WhatsAppNotificationService
from escalafin.application.services.rule_matcher import RuleMatcher
from escalafin.application.services.scheduled_tasks import ScheduledTasksService
from escalafin.application.services.template_renderer import TemplateRenderer
from escalafin.application.services.whatsapp_gateway import WhatsAppGateway


def build_gateway(
    db: Session,
    config_loader: Optional[WahaConfigLoader] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> WhatsAppGateway:
    return WhatsAppGateway(
        SQLAlchemyWhatsAppMessageRepository(db, WhatsAppMessage),
        config_loader or DatabaseWahaConfigLoader(db),
        transport=transport,
    )


def build_rule_matcher(db: Session) -> RuleMatcher:
    client_repo = SQLAlchemyClientRepository(db, Client)
    return RuleMatcher(
        SQLAlchemyChatbotRuleRepository(db, ChatbotRule),
        client_repo,
        SQLAlchemyConversationRepository(db, Conversation),
        TemplateRenderer(client_repo),
        notification_repo=SQLAlchemyRepository(db, Notification),
    )


def build_conversation_service(db: Session, gateway: Optional[WhatsAppGateway] = None) -> ConversationService:
    return ConversationService(
        SQLAlchemyConversationRepository(db, Conversation),
        SQLAlchemyClientRepository(db, Client),
        build_rule_matcher(db),
        gateway or build_gateway(db),
    )


def build_notification_service(db: Session, gateway: Optional[WhatsAppGateway] = None) -> WhatsAppNotificationService:
    return WhatsAppNotificationService(
        SQLAlchemyClientRepository(db, Client),
        gateway or build_gateway(db),
    )


def build_scheduled_tasks(db: Session, gateway: Optional[WhatsAppGateway] = None) -> ScheduledTasksService:
    # One sweep reads the provider configuration once
    gateway = gateway or build_gateway(db, config_loader=CachedWahaConfigLoader(DatabaseWahaConfigLoader(db)))
    return ScheduledTasksService(
        SQLAlchemyClientRepository(db, Client),
        SQLAlchemyWhatsAppMessageRepository(db, WhatsAppMessage),
        SQLAlchemyConversationRepository(db, Conversation),
        build_notification_service(db, gateway),
        gateway,
    )


def get_waha_transport() -> Optional[httpx.AsyncBaseTransport]:
    """HTTP transport for WAHA calls; None uses the network."""
    return None


def get_gateway(
    db: Session = Depends(get_db),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_waha_transport),
) -> WhatsAppGateway:
    return build_gateway(db, transport=transport)


def get_conversation_service(
    db: Session = Depends(get_db),
    gateway: WhatsAppGateway = Depends(get_gateway),
) -> ConversationService:
    return build_conversation_service(db, gateway)


def get_notification_service(
    db: Session = Depends(get_db),
    gateway: WhatsAppGateway = Depends(get_gateway),
) -> WhatsAppNotificationService:
    return build_notification_service(db, gateway)


def get_scheduled_tasks(
    db: Session = Depends(get_db),
    gateway: WhatsAppGateway = Depends(get_gateway),
) -> ScheduledTasksService:
    return build_scheduled_tasks(db, gateway)


def get_chatbot_rule_repository(db: Session = Depends(get_db)) -> SQLAlchemyChatbotRuleRepository:
    return SQLAlchemyChatbotRuleRepository(db, ChatbotRule)


def get_message_repository(db: Session = Depends(get_db)) -> SQLAlchemyWhatsAppMessageRepository:
    return SQLAlchemyWhatsAppMessageRepository(db, WhatsAppMessage)
