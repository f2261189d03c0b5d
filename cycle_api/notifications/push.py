import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

from pywebpush import WebPushException, webpush
from sqlmodel import Session, select

from ..config import settings
from ..models import PushSubscription

log = logging.getLogger(__name__)

PUSH_TTL = 86400  # 24 hours

ICONS = {
    "period_reminder": "/period-icon.png",
    "medication_reminder": "/medication-icon.png",
    "log_reminder": "/log-icon.png",
    "achievement": "/achievement-icon.png",
    "cycle_insight": "/insight-icon.png",
    "symptom_alert": "/alert-icon.png",
}
BADGES = {"period_reminder": "/period-badge.png", "medication_reminder": "/medication-badge.png"}
URLS = {"log_reminder": "/log", "cycle_insight": "/insights", "achievement": "/"}
ACTIONS = {
    "log_reminder": [
        {"action": "log-now", "title": "Log Now", "icon": "/log-icon.png"},
        {"action": "remind-later", "title": "Remind Later"},
    ],
    "cycle_insight": [
        {"action": "view-insights", "title": "View Insights", "icon": "/insight-icon.png"},
        {"action": "dismiss", "title": "Dismiss"},
    ],
}
DEFAULT_ACTIONS = [
    {"action": "view", "title": "View", "icon": "/icon-72x72.png"},
    {"action": "dismiss", "title": "Dismiss"},
]
INTERACTIVE = {"period_reminder", "medication_reminder", "symptom_alert"}


def urgency_for(ntype: str) -> str:
    if ntype in INTERACTIVE:
        return "high"
    if ntype == "log_reminder":
        return "normal"
    return "low"


def build_payload(ntype: str, title: str, message: Optional[str], metadata: Optional[dict] = None) -> dict:
    metadata = metadata or {}
    return {
        "title": title,
        "body": message or title,
        "icon": ICONS.get(ntype, "/icon-192x192.png"),
        "badge": BADGES.get(ntype, "/icon-72x72.png"),
        "data": {"type": ntype, "url": URLS.get(ntype, "/notifications"),
                 "notificationId": metadata.get("notificationId"), **metadata},
        "actions": ACTIONS.get(ntype, DEFAULT_ACTIONS),
        "requireInteraction": ntype in INTERACTIVE,
        "silent": False,
    }


def active_subscriptions(session: Session, user_id: int) -> List[PushSubscription]:
    return session.exec(
        select(PushSubscription).where(PushSubscription.user_id == user_id,
                                       PushSubscription.is_active == True)  # noqa: E712
    ).all()


def send_to_subscription(sub: PushSubscription, payload: dict, urgency: str = "normal"):
    webpush(
        subscription_info={"endpoint": sub.endpoint, "keys": {"p256dh": sub.p256dh_key, "auth": sub.auth_key}},
        data=json.dumps(payload),
        vapid_private_key=settings.VAPID_PRIVATE_KEY,
        vapid_claims={"sub": settings.VAPID_SUBJECT},
        ttl=PUSH_TTL,
        headers={"Urgency": urgency},
    )


def send_push(session: Session, user_id: int, ntype: str, title: str,
              message: Optional[str] = None, metadata: Optional[dict] = None) -> Dict[str, int]:
    """Deliver to every active subscription; gone endpoints (404/410) are deactivated."""
    if not settings.vapid_configured:
        log.warning("VAPID keys not configured; skipping push for user %s", user_id)
        return {"sent": 0, "failed": 0}
    subs = active_subscriptions(session, user_id)
    if not subs:
        log.info("No active push subscriptions for user %s", user_id)
        return {"sent": 0, "failed": 0}

    payload = build_payload(ntype, title, message, metadata)
    sent = failed = 0
    for sub in subs:
        try:
            send_to_subscription(sub, payload, urgency_for(ntype))
            sent += 1
        except WebPushException as e:
            failed += 1
            status = getattr(e.response, "status_code", None)
            log.error("Push to subscription %s failed (%s): %s", sub.id, status, e)
            if status in (404, 410):
                sub.is_active = False
                sub.updated_at = datetime.utcnow()
                session.add(sub)
        except Exception:
            # bad keys or a transport error; the other devices still get theirs
            failed += 1
            log.exception("Push to subscription %s failed", sub.id)
    session.commit()
    log.info("Push result for user %s: sent=%d failed=%d", user_id, sent, failed)
    return {"sent": sent, "failed": failed}
