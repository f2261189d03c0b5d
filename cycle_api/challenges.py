"""Challenge progress and badge awards.

Each challenge type maps to a progress strategy. After every new daily log
the engine recomputes progress for the user's open challenges, marks the ones
that reached their target, and awards the badge a challenge is linked to.
Badges with a data requirement (first log, streaks, counts) are checked in
the same pass.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Set

from sqlmodel import Session, select, func

from .models import (Badge, Challenge, Cycle, DailyLog, DailyLogSymptom,
                     PeriodDay, Streak, UserBadge, UserChallenge)

log = logging.getLogger(__name__)

WINDOW_DAYS = 30


# ---- progress strategies ----
def logging_streak(session: Session, user_id: int, today: date) -> int:
    """Consecutive logged days ending today; a missing log today does not break it."""
    days = set(session.exec(
        select(DailyLog.day).where(DailyLog.user_id == user_id)
        .order_by(DailyLog.day.desc()).limit(WINDOW_DAYS)
    ).all())
    streak = 0
    for i in range(WINDOW_DAYS):
        if today - timedelta(days=i) in days:
            streak += 1
        elif i > 0:
            break
    return streak


def completed_cycles(session: Session, user_id: int, today: date) -> int:
    return session.exec(
        select(func.count(Cycle.id)).where(Cycle.user_id == user_id, Cycle.is_active == False)  # noqa: E712
    ).one()


def recent_logs(session: Session, user_id: int, today: date) -> int:
    return session.exec(
        select(func.count(DailyLog.id)).where(
            DailyLog.user_id == user_id, DailyLog.day >= today - timedelta(days=WINDOW_DAYS))
    ).one()


def consistency_score(session: Session, user_id: int, today: date) -> int:
    return int(round(recent_logs(session, user_id, today) / WINDOW_DAYS * 100))


STRATEGIES: Dict[str, Callable[[Session, int, date], int]] = {
    "daily_logging": logging_streak,
    "period_tracking": completed_cycles,
    "symptom_awareness": recent_logs,
    "mood_tracking": recent_logs,
    "consistency": consistency_score,
}


def compute_progress(session: Session, user_id: int, ch: Challenge, current: int, today: date) -> int:
    fn = STRATEGIES.get(ch.type)
    return fn(session, user_id, today) if fn else current


# ---- engine ----
def initialize_user_challenges(session: Session, user_id: int):
    joined = set(session.exec(select(UserChallenge.challenge_id).where(UserChallenge.user_id == user_id)).all())
    for ch in session.exec(select(Challenge).where(Challenge.is_active == True)).all():  # noqa: E712
        if ch.id not in joined:
            session.add(UserChallenge(user_id=user_id, challenge_id=ch.id))


def award_badge(session: Session, user_id: int, badge_id: int, progress: Optional[dict] = None) -> bool:
    exists = session.exec(
        select(UserBadge).where(UserBadge.user_id == user_id, UserBadge.badge_id == badge_id)
    ).first()
    if exists:
        return False
    session.add(UserBadge(user_id=user_id, badge_id=badge_id, progress=progress))
    log.info("Badge %s awarded to user %s", badge_id, user_id)
    return True


def update_challenges(session: Session, user_id: int, today: Optional[date] = None) -> List[UserChallenge]:
    """Recompute open challenges; returns the ones completed by this call."""
    today = today or datetime.utcnow().date()
    rows = session.exec(
        select(UserChallenge, Challenge)
        .where(UserChallenge.user_id == user_id, UserChallenge.is_completed == False,  # noqa: E712
               UserChallenge.challenge_id == Challenge.id)
    ).all()
    done = []
    for uc, ch in rows:
        uc.current_progress = compute_progress(session, user_id, ch, uc.current_progress, today) or 0
        if uc.current_progress >= ch.target:
            uc.is_completed = True
            uc.completed_at = datetime.utcnow()
            done.append(uc)
            if ch.badge_id:
                award_badge(session, user_id, ch.badge_id, {"challenge_id": ch.id})
        session.add(uc)
    session.commit()
    return done


# ---- badge requirements ----
def _count(session: Session, stmt) -> int:
    return session.exec(stmt).one() or 0


def requirement_met(session: Session, user_id: int, req: Optional[dict]) -> bool:
    kind = (req or {}).get("type")
    if kind == "first_log":
        return _count(session, select(func.count(DailyLog.id)).where(DailyLog.user_id == user_id)) >= 1
    if kind == "streak":
        st = session.exec(select(Streak).where(Streak.user_id == user_id, Streak.type == "logging")).first()
        return bool(st) and st.longest_streak >= req.get("days", 0)
    if kind == "first_period":
        return _count(session, select(func.count(PeriodDay.id)).where(PeriodDay.user_id == user_id)) >= 1
    if kind == "symptom_logs":
        n = _count(session, select(func.count(func.distinct(DailyLogSymptom.daily_log_id)))
                   .where(DailyLogSymptom.daily_log_id == DailyLog.id, DailyLog.user_id == user_id))
        return n >= req.get("count", 0)
    if kind == "mood_energy_logs":
        n = _count(session, select(func.count(DailyLog.id)).where(
            DailyLog.user_id == user_id,
            (DailyLog.mood != None) | (DailyLog.energy_level != None)))  # noqa: E711
        return n >= req.get("count", 0)
    if kind == "consistent_logging":
        days = session.exec(select(DailyLog.day).where(DailyLog.user_id == user_id)).all()
        return len({(d.year, d.month) for d in days}) >= req.get("months", 0)
    # "challenge" badges only come from completed challenges
    return False


def earned_badge_ids(session: Session, user_id: int) -> Set[int]:
    return set(session.exec(select(UserBadge.badge_id).where(UserBadge.user_id == user_id)).all())


def check_and_award_badges(session: Session, user_id: int) -> List[Badge]:
    earned = earned_badge_ids(session, user_id)
    awarded = []
    for b in session.exec(select(Badge).where(Badge.is_active == True)).all():  # noqa: E712
        if b.id in earned or not requirement_met(session, user_id, b.requirement):
            continue
        award_badge(session, user_id, b.id)
        awarded.append(b)
    session.commit()
    return awarded
