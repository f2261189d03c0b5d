"""Daily log creation and the bookkeeping that hangs off it: symptom links,
cycle open/close on period starts, period days and streaks."""
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from sqlmodel import Session, select, func

from .models import (Cycle, DailyLog, DailyLogSymptom, PeriodDay, Streak,
                     Symptom, UserProfile)
from .schemas import DailyLogCreate, DailyLogOut, SymptomOut

log = logging.getLogger(__name__)

STREAK_TYPES = ("logging", "water", "exercise")
NEW_PERIOD_GAP_DAYS = 45


def ensure_profile(session: Session, user_id: int, **defaults) -> UserProfile:
    p = session.exec(select(UserProfile).where(UserProfile.user_id == user_id)).first()
    if not p:
        p = UserProfile(user_id=user_id, **defaults)
        session.add(p); session.flush()
    return p


def get_log(session: Session, user_id: int, day: date) -> Optional[DailyLog]:
    return session.exec(
        select(DailyLog).where(DailyLog.user_id == user_id, DailyLog.day == day)
    ).first()


def create_daily_log(session: Session, user_id: int, req: DailyLogCreate) -> DailyLog:
    """Insert the log plus every derived row, committed together."""
    data = req.model_dump(exclude={"user_id", "symptoms"})
    it = DailyLog(user_id=user_id, **data)
    session.add(it); session.flush()

    for entry in req.symptoms:
        s = session.exec(select(Symptom).where(Symptom.name == entry.name)).first()
        if not s:
            s = Symptom(name=entry.name, category="physical", is_default=False)
            session.add(s); session.flush()
        session.add(DailyLogSymptom(daily_log_id=it.id, symptom_id=s.id,
                                    severity=entry.severity, notes=entry.notes))

    if it.is_on_period:
        _record_period_day(session, user_id, it.day)

    update_streaks(session, user_id, it)
    session.commit(); session.refresh(it)
    return it


def is_new_period_start(session: Session, user_id: int, day: date) -> bool:
    yesterday = day - timedelta(days=1)
    prev = get_log(session, user_id, yesterday)
    recent = session.exec(
        select(DailyLog.id).where(
            DailyLog.user_id == user_id,
            DailyLog.day >= day - timedelta(days=NEW_PERIOD_GAP_DAYS),
            DailyLog.day <= yesterday,
            DailyLog.is_on_period == True,  # noqa: E712
        )
    ).first()
    return not (prev and prev.is_on_period) or recent is None


def _record_period_day(session: Session, user_id: int, day: date):
    active = session.exec(
        select(Cycle).where(Cycle.user_id == user_id, Cycle.is_active == True)  # noqa: E712
    ).all()
    if is_new_period_start(session, user_id, day):
        for c in active:
            c.is_active = False
            c.end_date = day
            c.cycle_length = (day - c.start_date).days
            c.period_length = session.exec(
                select(func.count(PeriodDay.id)).where(PeriodDay.cycle_id == c.id)
            ).one()
            c.updated_at = datetime.utcnow()
            session.add(c)
        cycle = Cycle(user_id=user_id, start_date=day, is_active=True)
        session.add(cycle); session.flush()
        p = ensure_profile(session, user_id)
        p.last_period_start = day; p.updated_at = datetime.utcnow()
        session.add(p)
        log.info("User %s: new cycle started %s (closed %d)", user_id, day, len(active))
    else:
        cycle = active[0] if active else None
    session.add(PeriodDay(user_id=user_id, cycle_id=cycle.id if cycle else None,
                          day=day, flow_intensity="medium"))


def _streak_applies(kind: str, it: DailyLog) -> bool:
    if kind == "water":
        return bool(it.water_intake)
    if kind == "exercise":
        return bool(it.exercise_minutes)
    return True


def update_streaks(session: Session, user_id: int, it: DailyLog):
    for kind in STREAK_TYPES:
        if not _streak_applies(kind, it):
            continue
        st = session.exec(select(Streak).where(Streak.user_id == user_id, Streak.type == kind)).first()
        if not st:
            session.add(Streak(user_id=user_id, type=kind, current_streak=1,
                               longest_streak=1, last_activity_date=it.day))
            continue
        if not st.last_activity_date:
            st.current_streak, st.last_activity_date = 1, it.day
        else:
            gap = (it.day - st.last_activity_date).days
            if gap < 0:
                # backfilled day; the streak is anchored on the latest activity
                continue
            if gap == 1:
                st.current_streak += 1
            elif gap > 1:
                st.current_streak = 1
            st.last_activity_date = it.day
        st.longest_streak = max(st.longest_streak, st.current_streak)
        st.updated_at = datetime.utcnow()
        session.add(st)


def get_streak(session: Session, user_id: int, kind: str = "logging") -> Optional[Streak]:
    return session.exec(select(Streak).where(Streak.user_id == user_id, Streak.type == kind)).first()


def init_streaks(session: Session, user_id: int):
    for kind in STREAK_TYPES:
        session.add(Streak(user_id=user_id, type=kind))


# ---- read helpers ----
def symptoms_for_logs(session: Session, log_ids: List[int]) -> Dict[int, List[SymptomOut]]:
    out: Dict[int, List[SymptomOut]] = defaultdict(list)
    if not log_ids:
        return out
    rows = session.exec(
        select(DailyLogSymptom, Symptom)
        .where(DailyLogSymptom.daily_log_id.in_(log_ids), DailyLogSymptom.symptom_id == Symptom.id)
    ).all()
    for link, s in rows:
        out[link.daily_log_id].append(SymptomOut(name=s.name, category=s.category, severity=link.severity))
    return out


def to_log_out(session: Session, logs: List[DailyLog]) -> List[DailyLogOut]:
    syms = symptoms_for_logs(session, [l.id for l in logs])
    return [DailyLogOut(**l.model_dump(), symptoms=syms.get(l.id, [])) for l in logs]
