import random
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select, func

from ..auth import get_owner
from ..challenges import compute_progress
from ..db import get_session
from ..insights import build_insights, month_bounds, monthly_insights
from ..models import (Affirmation, Badge, Challenge, Cycle, CyclePrediction, DailyLog,
                      PeriodDay, User, UserBadge, UserChallenge, UserProfile)
from ..predictions import generate_cycle_prediction, predict_for_user
from ..schemas import CycleOut, PredictionOut, ProfileOut, ProfileUpdate
from ..tracking import ensure_profile, get_streak, to_log_out

router = APIRouter(prefix="/api/users/{user_id}", tags=["Users"])


def _profile_or_404(session: Session, user_id: int) -> UserProfile:
    p = session.exec(select(UserProfile).where(UserProfile.user_id == user_id)).first()
    if not p: raise HTTPException(404, "Profile not found")
    return p


# Profile
@router.get("/profile", response_model=ProfileOut)
def profile_get(user: User = Depends(get_owner), session: Session = Depends(get_session)):
    return ProfileOut(**_profile_or_404(session, user.id).model_dump())


@router.put("/profile", response_model=ProfileOut)
def profile_update(payload: ProfileUpdate, user: User = Depends(get_owner), session: Session = Depends(get_session)):
    p = _profile_or_404(session, user.id)
    for f, v in payload.model_dump(exclude_unset=True).items():
        if v is not None:
            setattr(p, f, v)
    p.updated_at = datetime.utcnow()
    session.add(p); session.commit(); session.refresh(p)
    return ProfileOut(**p.model_dump())


@router.get("/cycles", response_model=List[CycleOut])
def cycle_history(limit: int = Query(12, ge=1, le=100), user: User = Depends(get_owner),
                  session: Session = Depends(get_session)):
    rows = session.exec(
        select(Cycle).where(Cycle.user_id == user.id).order_by(Cycle.start_date.desc()).limit(limit)
    ).all()
    return [CycleOut(**c.model_dump()) for c in rows]


# Calendar
@router.get("/calendar")
def calendar_month(year: Optional[int] = Query(None, ge=1900, le=2200), month: Optional[int] = Query(None, ge=1, le=12),
                   user: User = Depends(get_owner), session: Session = Depends(get_session)):
    today = datetime.utcnow().date()
    year, month = year or today.year, month or today.month
    start, end = month_bounds(year, month)

    logs = session.exec(
        select(DailyLog).where(DailyLog.user_id == user.id, DailyLog.day >= start, DailyLog.day <= end)
        .order_by(DailyLog.day)
    ).all()
    period_days = session.exec(
        select(PeriodDay).where(PeriodDay.user_id == user.id, PeriodDay.day >= start, PeriodDay.day <= end)
        .order_by(PeriodDay.day)
    ).all()
    profile = ensure_profile(session, user.id)
    session.commit()

    pains = [l.pain_level for l in logs if l.pain_level is not None]
    energies = [l.energy_level for l in logs if l.energy_level is not None]
    return {
        "year": year,
        "month": month,
        "logs": to_log_out(session, logs),
        "period_days": [{"day": p.day, "flow_intensity": p.flow_intensity} for p in period_days],
        "monthly_stats": {
            "period_days": sum(1 for l in logs if l.is_on_period),
            "logged_days": len(logs),
            "avg_pain": round(sum(pains) / len(pains), 1) if pains else 0,
            "avg_energy": round(sum(energies) / len(energies), 1) if energies else 0,
        },
        "predictions": predict_for_user(session, profile, today).as_dict(),
        "user_settings": {
            "average_cycle_length": profile.average_cycle_length,
            "average_period_length": profile.average_period_length,
        },
    }


# Predictions
@router.get("/predictions")
def prediction_latest(user: User = Depends(get_owner), session: Session = Depends(get_session)):
    row = session.exec(
        select(CyclePrediction).where(CyclePrediction.user_id == user.id)
        .order_by(CyclePrediction.created_at.desc(), CyclePrediction.id.desc())
    ).first()
    return {"prediction": PredictionOut(**row.model_dump()) if row else None}


@router.post("/predictions", response_model=PredictionOut, status_code=201)
def prediction_generate(user: User = Depends(get_owner), session: Session = Depends(get_session)):
    profile = ensure_profile(session, user.id)
    row = generate_cycle_prediction(session, profile, datetime.utcnow().date())
    if not row:
        raise HTTPException(400, "Not enough cycle data to generate predictions")
    return PredictionOut(**row.model_dump())


# Dashboard
@router.get("/dashboard")
def dashboard(user: User = Depends(get_owner), session: Session = Depends(get_session)):
    today = datetime.utcnow().date()
    profile = ensure_profile(session, user.id)
    session.commit()
    streak = get_streak(session, user.id, "logging")
    total = session.exec(select(func.count(DailyLog.id)).where(DailyLog.user_id == user.id)).one()
    badge_names = session.exec(
        select(Badge.name).where(UserBadge.user_id == user.id, UserBadge.badge_id == Badge.id)
        .order_by(UserBadge.earned_at)
    ).all()
    active = session.exec(
        select(Cycle).where(Cycle.user_id == user.id, Cycle.is_active == True)  # noqa: E712
        .order_by(Cycle.start_date.desc())
    ).first()
    pred = predict_for_user(session, profile, today)
    affirmations = session.exec(select(Affirmation).where(Affirmation.is_active == True)).all()  # noqa: E712
    return {
        "current_streak": streak.current_streak if streak else 0,
        "longest_streak": streak.longest_streak if streak else 0,
        "total_logged": total,
        "badges": badge_names,
        "current_cycle_day": (today - active.start_date).days + 1 if active else None,
        "average_cycle": profile.average_cycle_length,
        "next_period": pred.next_period,
        "fertile_window": pred.fertile_window,
        "affirmation": random.choice(affirmations).message if affirmations else None,
    }


# Insights
@router.get("/insights")
def insights(user: User = Depends(get_owner), session: Session = Depends(get_session)):
    return build_insights(session, user.id)


@router.get("/insights/monthly")
def insights_monthly(year: Optional[int] = Query(None, ge=1900, le=2200), month: Optional[int] = Query(None, ge=1, le=12),
                     user: User = Depends(get_owner), session: Session = Depends(get_session)):
    today = datetime.utcnow().date()
    return monthly_insights(session, user.id, year or today.year, month or today.month)


# Gamification
@router.get("/badges")
def badges(user: User = Depends(get_owner), session: Session = Depends(get_session)):
    earned_rows = session.exec(
        select(UserBadge, Badge).where(UserBadge.user_id == user.id, UserBadge.badge_id == Badge.id)
        .order_by(UserBadge.earned_at.desc())
    ).all()
    earned_ids = {b.id for _, b in earned_rows}
    active = session.exec(select(Badge).where(Badge.is_active == True)).all()  # noqa: E712
    available = [b for b in active if b.id not in earned_ids]
    total = len(active)
    return {
        "earned": [{**b.model_dump(exclude={"requirement", "created_at"}), "earned_at": ub.earned_at}
                   for ub, b in earned_rows],
        "available": [b.model_dump(exclude={"created_at"}) for b in available],
        "stats": {
            "total_earned": len(earned_rows),
            "total_available": total,
            "completion_percentage": round(len(earned_rows) / total * 100) if total else 0,
        },
    }


@router.get("/challenges")
def challenges(user: User = Depends(get_owner), session: Session = Depends(get_session)):
    today = datetime.utcnow().date()
    rows = session.exec(
        select(UserChallenge, Challenge)
        .where(UserChallenge.user_id == user.id, UserChallenge.challenge_id == Challenge.id)
        .order_by(UserChallenge.joined_at)
    ).all()
    out = []
    for uc, ch in rows:
        progress = uc.current_progress if uc.is_completed else compute_progress(session, user.id, ch, uc.current_progress, today)
        out.append({
            "id": uc.id,
            "challenge_id": ch.id,
            "title": ch.name,
            "description": ch.description,
            "type": ch.type,
            "target": ch.target,
            "target_type": ch.target_type,
            "current_progress": progress,
            "progress_percentage": min(100, round(progress / ch.target * 100)) if ch.target else 0,
            "is_completed": uc.is_completed,
            "completed_at": uc.completed_at,
            "start_date": ch.start_date,
            "end_date": ch.end_date,
            "joined_at": uc.joined_at,
        })
    return {"challenges": out}
