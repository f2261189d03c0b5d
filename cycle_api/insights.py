import calendar
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Optional

from sqlmodel import Session, select, func

from .models import (DailyLog, DailyLogSymptom, Notification, PeriodDay,
                     PushSubscription, Symptom, UserBadge)

MOOD_SCORES = {"happy": 5, "content": 4, "neutral": 3, "sad": 2, "angry": 1, "anxious": 1}
ANALYTICS_RANGES = {"7d": 7, "30d": 30, "90d": 90}


def months_before(d: date, months: int) -> date:
    y, m = divmod(d.month - 1 - months, 12)
    year, month = d.year + y, m + 1
    return date(year, month, min(d.day, calendar.monthrange(year, month)[1]))


def month_bounds(year: int, month: int):
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def _avg(values, default: float = 0.0) -> float:
    values = [v for v in values if v is not None]
    return sum(values) / len(values) if values else default


def symptom_frequencies(session: Session, user_id: int, start: date, end: Optional[date] = None):
    stmt = (
        select(Symptom.name, func.count(DailyLogSymptom.id))
        .where(DailyLogSymptom.symptom_id == Symptom.id, DailyLogSymptom.daily_log_id == DailyLog.id,
               DailyLog.user_id == user_id, DailyLog.day >= start)
    )
    if end:
        stmt = stmt.where(DailyLog.day <= end)
    rows = session.exec(stmt.group_by(Symptom.name).order_by(func.count(DailyLogSymptom.id).desc())).all()
    return [(name, int(n)) for name, n in rows]


def build_insights(session: Session, user_id: int, today: Optional[date] = None) -> dict:
    """Three months of logs rolled up for the insights page."""
    today = today or datetime.utcnow().date()
    logs = session.exec(
        select(DailyLog).where(DailyLog.user_id == user_id, DailyLog.day >= months_before(today, 3))
        .order_by(DailyLog.day.desc())
    ).all()
    moods = Counter(l.mood for l in logs if l.mood)
    periods = sum(1 for l in logs if l.is_on_period)
    avg_pain = _avg([l.pain_level for l in logs], 0)
    avg_energy = _avg([l.energy_level for l in logs], 5)
    badges = session.exec(select(func.count(UserBadge.id)).where(UserBadge.user_id == user_id)).one()
    return {
        "total_logged": len(logs),
        "periods_logged": periods,
        "avg_pain_level": round(avg_pain, 1),
        "avg_energy_level": round(avg_energy, 1),
        "cycle_consistency": round(min(95, len(logs) / 90 * 100)) if logs else 0,
        "badges_earned": badges,
        "symptoms": [{"name": n, "frequency": c}
                     for n, c in symptom_frequencies(session, user_id, months_before(today, 3))],
        "moods": [{"name": m.capitalize(), "frequency": c} for m, c in moods.most_common()],
        "monthly_trends": {"total_logs": len(logs), "period_days": periods,
                           "avg_pain": avg_pain, "avg_energy": avg_energy},
    }


def monthly_insights(session: Session, user_id: int, year: int, month: int) -> dict:
    start, end = month_bounds(year, month)
    logs = session.exec(
        select(DailyLog).where(DailyLog.user_id == user_id, DailyLog.day >= start, DailyLog.day <= end)
    ).all()
    period_days = session.exec(
        select(func.count(PeriodDay.id)).where(PeriodDay.user_id == user_id,
                                               PeriodDay.day >= start, PeriodDay.day <= end)
    ).one()
    moods = Counter(l.mood for l in logs if l.mood)
    mood_total = sum(moods.values())
    symptoms = symptom_frequencies(session, user_id, start, end)
    sym_total = sum(c for _, c in symptoms)
    return {
        "year": year,
        "month": month,
        "days_logged": len(logs),
        "period_days": period_days,
        "avg_mood_score": round(_avg([MOOD_SCORES.get(l.mood) for l in logs if l.mood]), 1),
        "avg_pain_level": round(_avg([l.pain_level for l in logs]), 1),
        "avg_energy_level": round(_avg([l.energy_level for l in logs]), 1),
        "avg_water_intake": round(_avg([l.water_intake for l in logs]), 1),
        "mood_distribution": {m: round(c / mood_total * 100) for m, c in moods.items()},
        "symptom_distribution": {n: round(c / sym_total * 100) for n, c in symptoms},
    }


def _device(user_agent: Optional[str]) -> str:
    ua = user_agent or "Unknown"
    if "Mobile" in ua or "Android" in ua:
        return "Mobile"
    if "Tablet" in ua or "iPad" in ua:
        return "Tablet"
    return "Desktop"


def _rates(d: dict) -> dict:
    sent = d["sent"]
    d["read_rate"] = d["read"] / sent * 100 if sent else 0
    d["click_rate"] = d["clicked"] / sent * 100 if sent else 0
    return d


def notification_analytics(session: Session, user_id: int, range_key: str = "7d",
                           now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    days = ANALYTICS_RANGES.get(range_key, 7)
    rows = session.exec(
        select(Notification).where(Notification.user_id == user_id,
                                   Notification.created_at >= now - timedelta(days=days))
    ).all()

    totals = {"sent": 0, "read": 0, "clicked": 0}
    by_type: dict = {}
    by_day = {}
    for i in range(days):
        key = (now - timedelta(days=i)).date().isoformat()
        by_day[key] = {"date": key, "sent": 0, "read": 0, "clicked": 0}

    for n in rows:
        clicked = bool((n.meta or {}).get("clicked"))
        buckets = [totals, by_type.setdefault(n.type, {"type": n.type, "sent": 0, "read": 0, "clicked": 0})]
        day = by_day.get(n.created_at.date().isoformat())
        if day:
            buckets.append(day)
        for b in buckets:
            b["sent"] += 1
            b["read"] += int(n.is_read)
            b["clicked"] += int(clicked)

    devices: dict = {}
    for sub in session.exec(select(PushSubscription).where(PushSubscription.user_id == user_id)).all():
        kind = _device(sub.user_agent)
        d = devices.setdefault(kind, {"device_type": kind, "count": 0, "active": 0})
        d["count"] += 1
        d["active"] += int(sub.is_active)

    _rates(totals)
    return {
        "total_sent": totals["sent"],
        "total_read": totals["read"],
        "total_clicked": totals["clicked"],
        "read_rate": totals["read_rate"],
        "click_rate": totals["click_rate"],
        "by_type": [_rates(t) for t in by_type.values()],
        "by_day": list(reversed([_rates(d) for d in by_day.values()])),
        "device_breakdown": list(devices.values()),
    }
