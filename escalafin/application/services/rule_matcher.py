"""Rule-based chatbot: picks the auto-response for an inbound WhatsApp message.

Active rules are tried in descending priority. The first rule whose trigger
matches and whose conditions hold wins: its actions run, its response is
rendered and returned, and no lower-priority rule is looked at. A rule that
cannot be evaluated (bad regex, malformed JSON, missing data) is logged and
treated as not matching.
"""

import json
import re
from typing import List, Optional

import structlog

from escalafin.config import Settings, get_settings
from escalafin.core.exceptions import RuleEvaluationError
from escalafin.domain.enums import NotificationType, TriggerType
from escalafin.domain.models.chatbot_rule import ChatbotRule
from escalafin.domain.models.notification import Notification
from escalafin.domain.repositories.base import BaseRepository
from escalafin.domain.repositories.chatbot_rule_repository import ChatbotRuleRepository
from escalafin.domain.repositories.client_repository import ClientRepository
from escalafin.domain.repositories.conversation_repository import ConversationRepository
from escalafin.domain.rules import (
    Action,
    AssignToAdvisor,
    Condition,
    CreateNotification,
    HasActiveLoans,
    parse_actions,
    parse_conditions,
)
from escalafin.application.services.template_renderer import TemplateRenderer

logger = structlog.get_logger(__name__)


def split_keywords(trigger: str) -> List[str]:
    return [k.strip().lower() for k in (trigger or "").split(",") if k.strip()]


class RuleMatcher:
    def __init__(
        self,
        rule_repo: ChatbotRuleRepository,
        client_repo: ClientRepository,
        conversation_repo: ConversationRepository,
        renderer: TemplateRenderer,
        notification_repo: Optional[BaseRepository[Notification]] = None,
        settings: Optional[Settings] = None,
    ):
        self.rule_repo = rule_repo
        self.client_repo = client_repo
        self.conversation_repo = conversation_repo
        self.renderer = renderer
        self.notification_repo = notification_repo
        self.settings = settings or get_settings()

    # -- triggers ----------------------------------------------------------

    def trigger_matches(self, rule: ChatbotRule, text: str) -> bool:
        text = (text or "")[: self.settings.MAX_MATCH_TEXT_LENGTH]

        if rule.trigger_type == TriggerType.KEYWORD:
            lowered = text.lower().strip()
            return any(keyword in lowered for keyword in split_keywords(rule.trigger))

        if rule.trigger_type == TriggerType.REGEX:
            pattern = rule.trigger or ""
            if len(pattern) > self.settings.MAX_REGEX_PATTERN_LENGTH:
                raise RuleEvaluationError(
                    "Regex pattern too long",
                    {"rule_id": rule.id, "length": len(pattern)},
                )
            try:
                compiled = re.compile(pattern, re.IGNORECASE)
            except re.error as e:
                raise RuleEvaluationError(
                    "Invalid regex pattern",
                    {"rule_id": rule.id, "error": str(e)},
                ) from e
            return compiled.search(text) is not None

        raise RuleEvaluationError("Unknown trigger type", {"rule_id": rule.id, "trigger_type": str(rule.trigger_type)})

    # -- conditions --------------------------------------------------------

    def conditions_hold(self, conditions: List[Condition], client_id: int) -> bool:
        if not conditions:
            return True

        if self.client_repo.get_by_id(client_id) is None:
            return False

        for condition in conditions:
            if isinstance(condition, HasActiveLoans):
                if self.client_repo.has_active_loans(client_id) != condition.expected:
                    return False
            else:
                logger.debug("Ignoring unknown chatbot condition", key=condition.key)
        return True

    # -- actions -----------------------------------------------------------

    def execute_actions(self, actions: List[Action], client_id: int, rule: ChatbotRule) -> None:
        for action in actions:
            if isinstance(action, AssignToAdvisor):
                self._assign_to_advisor(client_id)
            elif isinstance(action, CreateNotification):
                self._create_notification(client_id, rule)
            else:
                logger.debug("Ignoring unknown chatbot action", key=action.key)

    def _assign_to_advisor(self, client_id: int) -> None:
        conversation = self.conversation_repo.get_active_for_client(client_id)
        client = self.client_repo.get_by_id(client_id)
        if conversation is None or client is None or not client.advisor_id:
            return
        conversation.assigned_to_id = client.advisor_id
        self.conversation_repo.save(conversation)
        logger.info(
            "Conversation assigned to advisor",
            conversation_id=conversation.id,
            advisor_id=client.advisor_id,
        )

    def _create_notification(self, client_id: int, rule: ChatbotRule) -> None:
        if self.notification_repo is None:
            return
        conversation = self.conversation_repo.get_active_for_client(client_id)
        client = self.client_repo.get_by_id(client_id)
        if client is None:
            return

        recipient_id = (conversation.assigned_to_id if conversation else None) or client.advisor_id
        if not recipient_id:
            logger.info("No staff recipient for chatbot notification", client_id=client_id, rule_id=rule.id)
            return

        self.notification_repo.create({
            "user_id": recipient_id,
            "type": NotificationType.CHATBOT_ESCALATION,
            "title": "Mensaje de cliente por WhatsApp",
            "message": f"{client.full_name} activó la regla «{rule.name}» del chatbot.",
            "data": json.dumps({
                "client_id": client_id,
                "rule_id": rule.id,
                "conversation_id": conversation.id if conversation else None,
            }),
        })

    # -- evaluation --------------------------------------------------------

    def _evaluate_rule(self, rule: ChatbotRule, text: str, client_id: int) -> Optional[str]:
        if not self.trigger_matches(rule, text):
            return None

        if not self.conditions_hold(parse_conditions(rule.conditions), client_id):
            logger.debug("Chatbot rule conditions not met", rule_id=rule.id, client_id=client_id)
            return None

        self.execute_actions(parse_actions(rule.actions), client_id, rule)
        return self.renderer.render(rule.response, client_id)

    def evaluate(self, text: str, client_id: int) -> Optional[str]:
        """Return the rendered auto-response, or None when no rule applies."""
        try:
            rules = self.rule_repo.list_active_by_priority()
        except Exception:
            logger.exception("Could not load chatbot rules")
            return None

        for rule in rules:
            try:
                response = self._evaluate_rule(rule, text, client_id)
            except RuleEvaluationError as e:
                logger.warning("Chatbot rule skipped", rule_id=rule.id, error=e.message, details=e.details)
                continue
            except Exception:
                logger.exception("Chatbot rule failed", rule_id=rule.id)
                continue

            if response is not None:
                logger.info("Chatbot rule matched", rule_id=rule.id, priority=rule.priority, client_id=client_id)
                return response

        return None
