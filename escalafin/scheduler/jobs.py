"""APScheduler jobs: scheduled messages every 5 mins, reminders daily at 09:00, cleanup daily at 03:00."""

from datetime import datetime

import pytz
import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from escalafin.config import get_settings
from escalafin.infrastructure.database import SessionLocal

settings = get_settings()
logger = structlog.get_logger(__name__)
tz = pytz.timezone(settings.TIMEZONE)

scheduler = AsyncIOScheduler(timezone=tz)


async def scheduled_messages_job():
    """Deliver PENDING messages whose scheduled time has passed."""
    from escalafin.interfaces.deps import build_scheduled_tasks

    logger.info("Running scheduled messages job", at=datetime.now(tz).strftime("%d/%m/%Y %H:%M"))
    db = SessionLocal()
    try:
        result = await build_scheduled_tasks(db).process_scheduled_messages()
        logger.info("Scheduled messages job finished", **result)
    except Exception:
        logger.exception("Scheduled messages job failed")
    finally:
        db.close()


async def payment_reminders_job():
    """Remind clients with upcoming or overdue installments."""
    from escalafin.interfaces.deps import build_scheduled_tasks

    logger.info("Running payment reminders job", at=datetime.now(tz).strftime("%d/%m/%Y %H:%M"))
    db = SessionLocal()
    try:
        result = await build_scheduled_tasks(db).process_payment_reminders()
        logger.info("Payment reminders job finished", **result)
    except Exception:
        logger.exception("Payment reminders job failed")
    finally:
        db.close()


async def cleanup_job():
    from escalafin.interfaces.deps import build_scheduled_tasks

    db = SessionLocal()
    try:
        result = build_scheduled_tasks(db).cleanup_old_messages()
        logger.info("Cleanup job finished", **result)
    except Exception:
        logger.exception("Cleanup job failed")
    finally:
        db.close()


def register_jobs():
    scheduler.add_job(
        scheduled_messages_job,
        trigger=IntervalTrigger(minutes=5, timezone=tz),
        id="scheduled_messages",
        name="Scheduled messages (every 5 mins)",
        replace_existing=True,
    )
    scheduler.add_job(
        payment_reminders_job,
        trigger=CronTrigger(hour=9, minute=0, timezone=tz),
        id="payment_reminders",
        name="Payment reminders (daily 09:00)",
        replace_existing=True,
    )
    scheduler.add_job(
        cleanup_job,
        trigger=CronTrigger(hour=3, minute=0, timezone=tz),
        id="message_cleanup",
        name="Message cleanup (daily 03:00)",
        replace_existing=True,
    )


def start_scheduler():
    register_jobs()
    scheduler.start()
    logger.info("Scheduler started", timezone=settings.TIMEZONE)


def stop_scheduler():
    """Stop the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
