import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlmodel import Session, select, func

from ..db import engine
from ..models import DailyLog, PeriodDay, ReminderSetting, UserProfile
from . import service

logger = logging.getLogger(__name__)

PERIOD_REMINDER_DAYS = (3, 1)
DEFAULT_LOG_REMINDER_HOUR = 20
INSIGHT_MIN_LOGS = 7
STREAK_MILESTONES = {
    7: "🔥 7-day logging streak! You're building great habits!",
    14: "🔥 14-day logging streak! You're on fire!",
    30: "🔥 30-day logging streak! You're a logging champion!",
}

# Global scheduler instance
scheduler = None


def _enabled_reminders(session: Session, kind: str):
    return session.exec(
        select(ReminderSetting).where(ReminderSetting.type == kind, ReminderSetting.is_enabled == True)  # noqa: E712
    ).all()


def _profile(session: Session, user_id: int) -> Optional[UserProfile]:
    return session.exec(select(UserProfile).where(UserProfile.user_id == user_id)).first()


def local_now(now: datetime, tz_name: Optional[str]) -> datetime:
    """`now` is naive UTC; returns the naive wall-clock time in `tz_name`."""
    try:
        tz = ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, using UTC", tz_name)
        return now
    return now.replace(tzinfo=timezone.utc).astimezone(tz).replace(tzinfo=None)


def log_reminder_due(reminder_time: Optional[str], now: datetime) -> bool:
    if not reminder_time:
        return now.hour >= DEFAULT_LOG_REMINDER_HOUR
    hour, minute = (int(x) for x in reminder_time.split(":")[:2])
    return (now.hour == hour and now.minute >= minute) or now.hour > hour


# ---- passes ----
def check_period_reminders(session: Session, today: date) -> int:
    sent = 0
    for r in _enabled_reminders(session, "period"):
        try:
            p = _profile(session, r.user_id)
            if not p:
                continue
            last = session.exec(
                select(func.max(PeriodDay.day)).where(PeriodDay.user_id == r.user_id)
            ).one()
            if not last:
                continue
            days_until = (p.average_cycle_length or 28) - (today - last).days
            if days_until not in PERIOD_REMINDER_DAYS:
                continue
            if service.sent_today(session, r.user_id, "period_reminder", today):
                continue
            if service.is_notification_enabled(session, r.user_id, "period_reminder"):
                service.create_period_reminder(session, r.user_id, days_until)
                logger.info("Created period reminder for user %s: %d days", r.user_id, days_until)
                sent += 1
        except Exception:
            session.rollback()
            logger.exception("Error creating period reminder for user %s", r.user_id)
    return sent


def check_log_reminders(session: Session, now: datetime) -> int:
    sent = 0
    for r in _enabled_reminders(session, "log"):
        try:
            p = _profile(session, r.user_id)
            tz = p.timezone if p else None
            local = local_now(now, tz)
            if log_reminder_due(r.time, local) and log_reminder_for_user(session, r.user_id, now, local.date(), tz):
                sent += 1
        except Exception:
            session.rollback()
            logger.exception("Error creating log reminder for user %s", r.user_id)
    return sent


def log_reminder_for_user(session: Session, user_id: int, now: datetime, local_day: Optional[date] = None,
                          tz_name: Optional[str] = None) -> bool:
    """Remind unless the user already logged, or was already reminded, today.

    `local_day` is the user's calendar day in `tz_name`; both checks use it.
    """
    day = local_day or now.date()
    logged = session.exec(
        select(DailyLog.id).where(DailyLog.user_id == user_id, DailyLog.day == day)
    ).first()
    if logged:
        logger.debug("User %s has already logged today", user_id)
        return False
    if service.sent_today(session, user_id, "log_reminder", day, tz_name):
        logger.debug("Log reminder already sent today for user %s", user_id)
        return False
    service.create_log_reminder(session, user_id)
    logger.info("Created log reminder for user %s", user_id)
    return True


def check_insights(session: Session, today: date) -> int:
    created = 0
    for user_id in session.exec(select(UserProfile.user_id)).all():
        try:
            created += _insights_for_user(session, user_id, today)
        except Exception:
            session.rollback()
            logger.exception("Error creating insights for user %s", user_id)
    return created


def _insights_for_user(session: Session, user_id: int, today: date) -> int:
    logs = session.exec(
        select(DailyLog).where(DailyLog.user_id == user_id, DailyLog.day >= today - timedelta(days=30))
        .order_by(DailyLog.day.desc())
    ).all()
    if len(logs) < INSIGHT_MIN_LOGS:
        return 0
    created = 0

    if not service.sent_today(session, user_id, "cycle_insight", today) \
            and service.is_notification_enabled(session, user_id, "cycle_insight"):
        pain_days = sum(1 for l in logs if l.pain_level is not None and l.pain_level > 6)
        if pain_days >= 3:
            service.create_cycle_insight(
                session, user_id,
                f"You've experienced high pain levels ({pain_days} times) in the past month. "
                "Consider tracking triggers and discussing with your healthcare provider.",
                {"painDays": pain_days, "period": "30 days"})
            created += 1
        low_energy = sum(1 for l in logs if l.energy_level is not None and l.energy_level <= 3)
        if low_energy >= 5:
            service.create_cycle_insight(
                session, user_id,
                f"You've had low energy on {low_energy} days this month. "
                "Consider focusing on sleep, nutrition, and stress management.",
                {"lowEnergyDays": low_energy, "period": "30 days"})
            created += 1

    days = {l.day for l in logs}
    streak = 0
    while today - timedelta(days=streak) in days:
        streak += 1
    if streak in STREAK_MILESTONES and not service.sent_today(session, user_id, "achievement", today):
        service.create_achievement(session, user_id, STREAK_MILESTONES[streak])
        created += 1
    return created


def run_scheduled_tasks(session: Session, now: Optional[datetime] = None) -> dict:
    """One scheduler tick: due notifications first, then the three passes."""
    now = now or datetime.utcnow()
    today = now.date()
    logger.info("Running scheduled notification tasks")
    summary = {"processed": 0, "period_reminders": 0, "log_reminders": 0, "insights": 0}
    try:
        summary["processed"] = len(service.process_scheduled(session, now))
    except Exception:
        session.rollback()
        logger.exception("Error processing scheduled notifications")
    for key, fn, arg in (("period_reminders", check_period_reminders, today),
                         ("log_reminders", check_log_reminders, now),
                         ("insights", check_insights, today)):
        try:
            summary[key] = fn(session, arg)
        except Exception:
            session.rollback()
            logger.exception("Error in scheduler pass %s", key)
    logger.info("Scheduled notification tasks completed: %s", summary)
    return summary


# ---- in-process runner ----
def _tick():
    with Session(engine) as s:
        run_scheduled_tasks(s)


def get_scheduler() -> AsyncIOScheduler:
    """Get the global scheduler instance."""
    global scheduler
    if scheduler is None:
        scheduler = AsyncIOScheduler()
    return scheduler


def start_scheduler(interval_minutes: int = 15):
    """Start the scheduler with the notification job."""
    sch = get_scheduler()
    sch.add_job(_tick, IntervalTrigger(minutes=interval_minutes), id="notifications",
                replace_existing=True, max_instances=1, coalesce=True)
    sch.start()
    logger.info("Scheduler started (every %d min)", interval_minutes)


def stop_scheduler():
    """Stop the scheduler."""
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")
