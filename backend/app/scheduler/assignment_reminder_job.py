"""
Assignment reminder cron jobs: weekdays at 18:00 and weekends at 14:00 in settings.notify_timezone.
Both triggers run the same routine; the trigger name only shows up in logs.
"""
import logging
from typing import Any

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import Settings, settings
from app.core.constants import (
    REMINDER_WEEKDAY_DAYS,
    REMINDER_WEEKDAY_JOB_ID,
    REMINDER_WEEKEND_DAYS,
    REMINDER_WEEKEND_JOB_ID,
)
from app.db.session import SessionLocal
from app.repos.notification_store import NotificationStore
from app.services.assignment_reminder_service import NotificationDispatcher, today_iso
from app.services.fcm import FcmTransport

logger = logging.getLogger(__name__)


def run_assignment_reminder_job(trigger: str = "manual", transport=None) -> dict[str, Any]:
    """
    One reminder run. Prune deletions are committed at the end; any error rolls back, is logged,
    and re-raised so the scheduler records the run as failed.
    """
    logger.info("Assignment reminder (%s) starting", trigger)
    db = SessionLocal()
    try:
        transport = transport or FcmTransport.from_settings(settings)
        dispatcher = NotificationDispatcher(NotificationStore(db), transport, locale=settings.reminder_locale)
        result = dispatcher.dispatch(today_iso(settings.notify_timezone))
        db.commit()
        logger.info("Assignment reminder (%s) done: %s", trigger, result.to_dict())
        return result.to_dict()
    except Exception:
        db.rollback()
        logger.exception("Assignment reminder (%s) failed", trigger)
        raise
    finally:
        db.close()


def register_reminder_jobs(scheduler: BaseScheduler, cfg: Settings = settings) -> None:
    """Add the weekday and weekend cron jobs. Trigger timezone is the same one today_iso uses."""
    scheduler.add_job(
        run_assignment_reminder_job,
        CronTrigger(day_of_week=REMINDER_WEEKDAY_DAYS, hour=cfg.weekday_reminder_hour, minute=0, timezone=cfg.notify_timezone),
        kwargs={"trigger": "weekday"},
        id=REMINDER_WEEKDAY_JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.add_job(
        run_assignment_reminder_job,
        CronTrigger(day_of_week=REMINDER_WEEKEND_DAYS, hour=cfg.weekend_reminder_hour, minute=0, timezone=cfg.notify_timezone),
        kwargs={"trigger": "weekend"},
        id=REMINDER_WEEKEND_JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
