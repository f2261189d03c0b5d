import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..auth import get_owner, get_user
from ..challenges import check_and_award_badges, earned_badge_ids, update_challenges
from ..db import get_session
from ..models import Badge, DailyLog, Symptom, User
from ..notifications import service as notify
from ..schemas import DailyLogCreate, DailyLogOut, SymptomCatalogOut
from ..tracking import create_daily_log, get_log, to_log_out

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Daily logs"])


@router.post("/daily-logs", status_code=201)
def daily_log_create(req: DailyLogCreate, user: User = Depends(get_user), session: Session = Depends(get_session)):
    if req.user_id is not None and req.user_id != user.id:
        raise HTTPException(403, "Cannot create logs for another user")
    if get_log(session, user.id, req.day):
        raise HTTPException(409, "A log already exists for this date")
    try:
        it = create_daily_log(session, user.id, req)
    except IntegrityError:
        session.rollback()
        raise HTTPException(409, "A log already exists for this date")

    before = earned_badge_ids(session, user.id)
    completed = update_challenges(session, user.id)
    check_and_award_badges(session, user.id)
    # challenge completions award badges too, so diff the earned set
    new_ids = earned_badge_ids(session, user.id) - before
    badges = session.exec(select(Badge).where(Badge.id.in_(new_ids)).order_by(Badge.id)).all() if new_ids else []
    for b in badges:
        if notify.is_notification_enabled(session, user.id, "achievement"):
            notify.create_achievement(session, user.id, f"{b.icon or ''} You earned the {b.name} badge!".strip())
    return {
        "success": True,
        "data": to_log_out(session, [it])[0],
        "completed_challenges": [uc.challenge_id for uc in completed],
        "new_badges": [b.name for b in badges],
    }


@router.get("/daily-logs")
def daily_log_get(day: date = Query(..., alias="date"), user_id: Optional[int] = None,
                  user: User = Depends(get_user), session: Session = Depends(get_session)):
    if user_id is not None and user_id != user.id:
        raise HTTPException(403, "Forbidden")
    it = get_log(session, user.id, day)
    return {"success": True, "data": to_log_out(session, [it])[0] if it else None}


@router.get("/users/{user_id}/daily-logs", response_model=List[DailyLogOut])
def daily_log_list(user_id: int, start: Optional[date] = None, end: Optional[date] = None,
                   limit: int = Query(100, ge=1, le=366),
                   user: User = Depends(get_owner), session: Session = Depends(get_session)):
    q = select(DailyLog).where(DailyLog.user_id == user.id)
    if start: q = q.where(DailyLog.day >= start)
    if end: q = q.where(DailyLog.day <= end)
    logs = session.exec(q.order_by(DailyLog.day.desc()).limit(limit)).all()
    return to_log_out(session, logs)


@router.get("/symptoms", response_model=List[SymptomCatalogOut])
def symptom_catalog(session: Session = Depends(get_session)):
    rows = session.exec(select(Symptom).order_by(Symptom.category, Symptom.name)).all()
    return [SymptomCatalogOut(**s.model_dump()) for s in rows]
