"""In-app notifications.

Every notification is a row. "Immediate" ones are stamped sent on creation
and also pushed to the user's devices; scheduled ones wait for
`process_scheduled` to pick them up.
"""
import logging
from datetime import datetime, date, time, timedelta, timezone
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlmodel import Session, select, func

from ..models import Notification, ReminderSetting
from .push import send_push

log = logging.getLogger(__name__)

# notification type -> reminder setting type that switches it on/off
PREFERENCE_TYPES = {
    "period_reminder": "period",
    "log_reminder": "log",
    "medication_reminder": "pill",
    "cycle_insight": "insight",
    "achievement": "achievement",
    "symptom_alert": "symptom",
}


def create(session: Session, user_id: int, ntype: str, title: str, message: Optional[str] = None,
           metadata: Optional[dict] = None, scheduled_for: Optional[datetime] = None,
           sent_at: Optional[datetime] = None) -> Notification:
    n = Notification(user_id=user_id, type=ntype, title=title, message=message,
                     meta=metadata, scheduled_for=scheduled_for, sent_at=sent_at)
    session.add(n); session.commit(); session.refresh(n)
    return n


def send_immediate(session: Session, user_id: int, ntype: str, title: str,
                   message: Optional[str] = None, metadata: Optional[dict] = None) -> Notification:
    now = datetime.utcnow()
    return create(session, user_id, ntype, title, message, metadata, scheduled_for=now, sent_at=now)


def schedule(session: Session, user_id: int, ntype: str, title: str, message: Optional[str] = None,
             metadata: Optional[dict] = None, scheduled_for: Optional[datetime] = None) -> Notification:
    if not scheduled_for:
        raise ValueError("scheduled_for is required for scheduled notifications")
    return create(session, user_id, ntype, title, message, metadata, scheduled_for=scheduled_for)


def send_immediate_with_push(session: Session, user_id: int, ntype: str, title: str,
                             message: Optional[str] = None, metadata: Optional[dict] = None) -> Notification:
    n = send_immediate(session, user_id, ntype, title, message, metadata)
    send_push(session, user_id, ntype, title, message, {**(metadata or {}), "notificationId": n.id})
    return n


def process_scheduled(session: Session, now: Optional[datetime] = None) -> List[dict]:
    """Mark due, unsent notifications as sent and push them."""
    now = now or datetime.utcnow()
    due = session.exec(
        select(Notification).where(Notification.scheduled_for <= now, Notification.sent_at == None)  # noqa: E711
    ).all()
    results = []
    for n in due:
        n.sent_at = now
        session.add(n); session.commit()
        try:
            send_push(session, n.user_id, n.type, n.title, n.message, {**(n.meta or {}), "notificationId": n.id})
            results.append({"id": n.id, "status": "sent", "type": n.type})
        except Exception as e:
            log.exception("Error pushing scheduled notification %s", n.id)
            results.append({"id": n.id, "status": "failed", "error": str(e)})
    return results


def is_notification_enabled(session: Session, user_id: int, ntype: str) -> bool:
    kind = PREFERENCE_TYPES.get(ntype, ntype)
    pref = session.exec(
        select(ReminderSetting).where(ReminderSetting.user_id == user_id, ReminderSetting.type == kind)
    ).first()
    return pref.is_enabled if pref else True


def utc_day_start(day: date, tz_name: Optional[str] = None) -> datetime:
    """Naive UTC instant at which `day` begins in `tz_name`."""
    try:
        tz = ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        tz = timezone.utc
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc).replace(tzinfo=None)


def sent_today(session: Session, user_id: int, ntype: str, today: date, tz_name: Optional[str] = None) -> bool:
    """`today` is a calendar day in `tz_name` (UTC when unset)."""
    start, end = utc_day_start(today, tz_name), utc_day_start(today + timedelta(days=1), tz_name)
    return session.exec(
        select(Notification.id).where(
            Notification.user_id == user_id, Notification.type == ntype,
            Notification.created_at >= start, Notification.created_at < end)
    ).first() is not None


def unread_count(session: Session, user_id: int) -> int:
    return session.exec(
        select(func.count(Notification.id)).where(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
    ).one()


# ---- typed creators ----
def _plural(n: int) -> str:
    return "" if n == 1 else "s"


def create_period_reminder(session: Session, user_id: int, days_until: int) -> Notification:
    s = _plural(days_until)
    return send_immediate_with_push(
        session, user_id, "period_reminder",
        f"Period Expected in {days_until} Day{s}",
        f"Your period is expected to start in {days_until} day{s}. "
        "Consider preparing period supplies and tracking any symptoms.",
        {"daysUntil": days_until, "category": "health", "priority": "medium"},
    )


def create_log_reminder(session: Session, user_id: int) -> Notification:
    return send_immediate_with_push(
        session, user_id, "log_reminder", "Time to Log Your Day",
        "Don't forget to log your mood, energy, and any symptoms today. "
        "Consistent tracking helps with better insights!",
        {"category": "tracking", "priority": "low"},
    )


def create_cycle_insight(session: Session, user_id: int, insight: str, data: Optional[Dict] = None) -> Notification:
    return send_immediate_with_push(
        session, user_id, "cycle_insight", "New Cycle Insight", insight,
        {"category": "insights", "priority": "medium", "data": data},
    )


def create_achievement(session: Session, user_id: int, achievement: str) -> Notification:
    return send_immediate_with_push(
        session, user_id, "achievement", "Achievement Unlocked! 🏆", achievement,
        {"category": "gamification", "priority": "high"},
    )


def create_medication_reminder(session: Session, user_id: int, medication: str) -> Notification:
    return send_immediate_with_push(
        session, user_id, "medication_reminder", "Medication Reminder",
        f"Time to take your {medication}. Don't forget to log any side effects or symptoms.",
        {"medicationName": medication, "category": "health", "priority": "high"},
    )


def create_symptom_alert(session: Session, user_id: int, symptom: str, severity: str) -> Notification:
    return send_immediate_with_push(
        session, user_id, "symptom_alert", "Symptom Pattern Detected",
        f"We've noticed a pattern with {symptom} ({severity} severity). "
        "Consider consulting with your healthcare provider.",
        {"symptom": symptom, "severity": severity, "category": "health", "priority": "high"},
    )
