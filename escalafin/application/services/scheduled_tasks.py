"""Periodic sweeps: payment reminders, scheduled messages and retention cleanup.

Items are processed one at a time. A failure on one item is logged and the
sweep moves on to the next; nothing aborts the batch.
"""

from datetime import date, datetime, timedelta
from typing import Optional

import pytz
import structlog

from escalafin.config import Settings, get_settings
from escalafin.domain.enums import TERMINAL_DELIVERY_STATUSES
from escalafin.domain.models.types import utcnow
from escalafin.domain.repositories.client_repository import ClientRepository
from escalafin.domain.repositories.conversation_repository import ConversationRepository
from escalafin.domain.repositories.whatsapp_message_repository import WhatsAppMessageRepository
from escalafin.application.services.notification_service import WhatsAppNotificationService
from escalafin.application.services.whatsapp_gateway import WhatsAppGateway

logger = structlog.get_logger(__name__)


class ScheduledTasksService:
    def __init__(
        self,
        client_repo: ClientRepository,
        message_repo: WhatsAppMessageRepository,
        conversation_repo: ConversationRepository,
        notifications: WhatsAppNotificationService,
        gateway: WhatsAppGateway,
        settings: Optional[Settings] = None,
    ):
        self.client_repo = client_repo
        self.message_repo = message_repo
        self.conversation_repo = conversation_repo
        self.notifications = notifications
        self.gateway = gateway
        self.settings = settings or get_settings()
        self.tz = pytz.timezone(self.settings.TIMEZONE)

    async def process_payment_reminders(self, today: Optional[date] = None) -> dict:
        """Remind clients with installments due soon or already overdue (one reminder per loan)."""
        today = today or datetime.now(self.tz).date()
        horizon = today + timedelta(days=self.settings.REMINDER_DAYS_AHEAD)

        upcoming = self.client_repo.get_unpaid_entries_due_between(today, horizon)
        overdue = self.client_repo.get_unpaid_entries_due_before(today)

        summary = {"upcoming": len(upcoming), "overdue": len(overdue), "sent": 0, "skipped": 0, "failed": 0}
        seen_loans = set()

        loan_ids = []
        for entry in overdue + upcoming:
            if entry.loan_id not in seen_loans:
                seen_loans.add(entry.loan_id)
                loan_ids.append(entry.loan_id)

        for loan_id in loan_ids:
            try:
                result = await self.notifications.send_payment_reminder(loan_id, today=today)
            except Exception as e:
                # A database failure leaves the session unusable for the next loan
                self.message_repo.rollback()
                summary["failed"] += 1
                logger.error("Payment reminder failed", loan_id=loan_id, error=str(e))
                continue

            if result["status"] == "skipped":
                summary["skipped"] += 1
            else:
                summary["sent"] += 1

        logger.info("Payment reminders processed", **summary)
        return summary

    async def process_scheduled_messages(self, now: Optional[datetime] = None) -> dict:
        """Send PENDING messages whose scheduled time has come."""
        now = now or utcnow()
        due = self.message_repo.list_due_scheduled(now)

        summary = {"due": len(due), "sent": 0, "failed": 0}
        for record in due:
            message_id = record.id
            try:
                await self.gateway.deliver(record)
                summary["sent"] += 1
            except Exception as e:
                self.message_repo.rollback()
                summary["failed"] += 1
                logger.error("Scheduled message failed", message_id=message_id, error=str(e))

        logger.info("Scheduled messages processed", **summary)
        return summary

    def cleanup_old_messages(self, now: Optional[datetime] = None) -> dict:
        """Delete finished delivery-log rows and conversation messages past the retention window."""
        now = now or utcnow()
        cutoff = now - timedelta(days=self.settings.MESSAGE_RETENTION_DAYS)

        deleted_whatsapp = self.message_repo.delete_older_than(cutoff, TERMINAL_DELIVERY_STATUSES)
        deleted_conversation = self.conversation_repo.delete_messages_older_than(cutoff)

        summary = {
            "whatsapp_messages_deleted": deleted_whatsapp,
            "conversation_messages_deleted": deleted_conversation,
            "cutoff": cutoff.isoformat(),
        }
        logger.info("Message cleanup completed", **summary)
        return summary
