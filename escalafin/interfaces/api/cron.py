"""Cron API routes: externally triggered sweeps, authorised with the cron secret."""

import secrets
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Header

from escalafin.config import get_settings
from escalafin.core.exceptions import UnauthorizedException
from escalafin.interfaces.deps import get_scheduled_tasks
from escalafin.application.services.scheduled_tasks import ScheduledTasksService

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/cron", tags=["Cron"])

# Hosted cron services call with GET; POST is kept for manual runs
CRON_METHODS = ["GET", "POST"]


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    expected = get_settings().CRON_SECRET
    if not expected:
        raise UnauthorizedException("CRON_SECRET no está configurado")
    if not authorization or not secrets.compare_digest(authorization, f"Bearer {expected}"):
        logger.warning("Rejected cron call")
        raise UnauthorizedException()


@router.api_route("/reminders", methods=CRON_METHODS, dependencies=[Depends(verify_cron_secret)])
async def run_reminders(tasks: ScheduledTasksService = Depends(get_scheduled_tasks)):
    return await tasks.process_payment_reminders()


@router.api_route("/scheduled-messages", methods=CRON_METHODS, dependencies=[Depends(verify_cron_secret)])
async def run_scheduled_messages(tasks: ScheduledTasksService = Depends(get_scheduled_tasks)):
    return await tasks.process_scheduled_messages()


@router.api_route("/cleanup", methods=CRON_METHODS, dependencies=[Depends(verify_cron_secret)])
def run_cleanup(tasks: ScheduledTasksService = Depends(get_scheduled_tasks)):
    return tasks.cleanup_old_messages()
