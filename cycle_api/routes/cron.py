import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from ..auth import get_user
from ..config import settings
from ..db import get_session
from ..models import User
from ..notifications import service as notify
from ..notifications.scheduler import check_log_reminders, log_reminder_for_user, run_scheduled_tasks

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["Cron"])
test_router = APIRouter(prefix="/api/test/notifications", tags=["Testing"])


@router.post("/notifications")
def cron_notifications(authorization: Optional[str] = Header(None), session: Session = Depends(get_session)):
    if settings.CRON_SECRET and authorization != f"Bearer {settings.CRON_SECRET}":
        raise HTTPException(401, "Unauthorized")
    log.info("Starting notification cron job")
    summary = run_scheduled_tasks(session)
    return {"success": True, "message": "Notification tasks completed",
            "timestamp": datetime.utcnow().isoformat(), "summary": summary}


@router.get("/notifications")
def cron_notifications_manual(secret: Optional[str] = None, session: Session = Depends(get_session)):
    if secret != settings.CRON_SECRET:
        raise HTTPException(401, "Unauthorized")
    summary = run_scheduled_tasks(session)
    return {"success": True, "message": "Manual notification run completed",
            "timestamp": datetime.utcnow().isoformat(), "summary": summary}


# ---- developer triggers (mounted only with ENABLE_TEST_ROUTES) ----
@test_router.api_route("", methods=["GET", "POST"])
def test_scheduler_action(action: Literal["log-reminder", "check-log-reminders", "process-scheduled", "full-run"],
                          user_id: Optional[int] = Query(None), session: Session = Depends(get_session)):
    now = datetime.utcnow()
    if action == "log-reminder":
        if user_id is None:
            raise HTTPException(400, "user_id required for log-reminder test")
        return {"success": True, "sent": log_reminder_for_user(session, user_id, now)}
    if action == "check-log-reminders":
        return {"success": True, "sent": check_log_reminders(session, now)}
    if action == "process-scheduled":
        return {"success": True, "results": notify.process_scheduled(session, now)}
    return {"success": True, "summary": run_scheduled_tasks(session, now)}


class ImmediateTest(BaseModel):
    type: Literal["log_reminder", "period_reminder", "achievement"] = "log_reminder"


@test_router.post("/immediate", status_code=201)
def test_immediate(req: ImmediateTest, user: User = Depends(get_user), session: Session = Depends(get_session)):
    if req.type == "period_reminder":
        n = notify.create_period_reminder(session, user.id, 3)
    elif req.type == "achievement":
        n = notify.create_achievement(session, user.id, "🎉 Test achievement! You're awesome!")
    else:
        n = notify.create_log_reminder(session, user.id)
    return {"success": True, "notification_id": n.id, "type": n.type}
