"""Cycle prediction.

The next period is anchored on the most recent cycle start (or the profile's
last period start) and projected forward by a cycle length that blends the
user's configured length with their recent history:

    length = round(configured * 0.7 + historical_avg * 0.3)   (>= 2 valid cycles)
    length = configured                                        (otherwise)

Ovulation is placed 14 days before the next period and the fertile window
runs from 5 days before ovulation to 1 day after it.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence

from sqlmodel import Session, select

from .models import Cycle, CyclePrediction, UserProfile

RECENT_CYCLES = 3
LUTEAL_DAYS = 14
FERTILE_BEFORE = 5
FERTILE_AFTER = 1
DEFAULT_CYCLE_LENGTH = 28


@dataclass
class Prediction:
    next_period: Optional[date] = None
    ovulation: Optional[date] = None
    fertile_start: Optional[date] = None
    fertile_end: Optional[date] = None
    cycle_length: int = DEFAULT_CYCLE_LENGTH
    period_length: int = 5

    @property
    def fertile_window(self) -> Optional[str]:
        if not self.fertile_start or not self.fertile_end:
            return None
        return f"{self.fertile_start.isoformat()} to {self.fertile_end.isoformat()}"

    def as_dict(self) -> dict:
        return {
            "next_period": self.next_period.isoformat() if self.next_period else None,
            "ovulation": self.ovulation.isoformat() if self.ovulation else None,
            "fertile_window": self.fertile_window,
            "expected_period_length": self.period_length,
            "cycle_length": self.cycle_length,
        }


def blended_cycle_length(configured: int, historical: Sequence[Optional[int]]) -> int:
    valid = [c for c in historical if c and c > 0]
    if len(valid) < 2:
        return configured
    avg = sum(valid) / len(valid)
    # half-up, so 28.5 becomes 29
    return int(configured * 0.7 + avg * 0.3 + 0.5)


def next_period_after(anchor: date, cycle_length: int, today: date) -> date:
    nxt = anchor + timedelta(days=cycle_length)
    while nxt < today:
        nxt += timedelta(days=cycle_length)
    return nxt


def fertile_window(ovulation: date):
    return ovulation - timedelta(days=FERTILE_BEFORE), ovulation + timedelta(days=FERTILE_AFTER)


def predict(configured_length: int, period_length: int, cycles: List[Cycle],
            last_period_start: Optional[date], today: date) -> Prediction:
    """`cycles` newest first."""
    length = blended_cycle_length(configured_length, [c.cycle_length for c in cycles[:RECENT_CYCLES]])
    out = Prediction(cycle_length=length, period_length=period_length)
    anchor = cycles[0].start_date if cycles else last_period_start
    if not anchor:
        return out
    out.next_period = next_period_after(anchor, length, today)
    out.ovulation = out.next_period - timedelta(days=LUTEAL_DAYS)
    out.fertile_start, out.fertile_end = fertile_window(out.ovulation)
    return out


def recent_cycles(session: Session, user_id: int, limit: int = RECENT_CYCLES) -> List[Cycle]:
    return session.exec(
        select(Cycle).where(Cycle.user_id == user_id)
        .order_by(Cycle.start_date.desc()).limit(limit)
    ).all()


def predict_for_user(session: Session, profile: UserProfile, today: date) -> Prediction:
    return predict(profile.average_cycle_length, profile.average_period_length,
                   recent_cycles(session, profile.user_id), profile.last_period_start, today)


def generate_cycle_prediction(session: Session, profile: UserProfile, today: date) -> Optional[CyclePrediction]:
    """Store a prediction snapshot; None when fewer than two cycles exist."""
    cycles = session.exec(
        select(Cycle).where(Cycle.user_id == profile.user_id).order_by(Cycle.start_date.desc())
    ).all()
    if len(cycles) < 2:
        return None
    completed = [c for c in cycles if not c.is_active]
    lengths = [c.cycle_length or DEFAULT_CYCLE_LENGTH for c in completed]
    avg = int(round(sum(lengths) / len(lengths))) if lengths else DEFAULT_CYCLE_LENGTH

    start = next_period_after(cycles[0].start_date, avg, today)
    ovulation = start - timedelta(days=LUTEAL_DAYS)
    f_start, f_end = fertile_window(ovulation)
    row = CyclePrediction(
        user_id=profile.user_id,
        predicted_period_start=start,
        predicted_period_end=start + timedelta(days=profile.average_period_length),
        predicted_ovulation=ovulation,
        fertility_window_start=f_start,
        fertility_window_end=f_end,
        confidence=85 if len(completed) >= 3 else 70,
    )
    session.add(row); session.commit(); session.refresh(row)
    return row
