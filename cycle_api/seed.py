"""Catalog data every installation starts with: symptoms, badges, challenges
and affirmations. Seeding is idempotent; a table that already has rows is
left alone."""
import logging
from datetime import datetime

from sqlmodel import Session, select

from .models import Affirmation, Badge, Challenge, Symptom

log = logging.getLogger(__name__)

DEFAULT_SYMPTOMS = [
    ("Cramps", "physical"), ("Headache", "physical"), ("Fatigue", "physical"),
    ("Back Pain", "physical"), ("Breast Tenderness", "physical"), ("Bloating", "physical"),
    ("Mood Swings", "emotional"), ("Irritability", "emotional"), ("Anxiety", "emotional"),
    ("Nausea", "physical"), ("Acne", "physical"), ("Food Cravings", "physical"),
    ("Sleep Issues", "physical"), ("Concentration Issues", "cognitive"),
]

DEFAULT_BADGES = [
    {"name": "First Log", "description": "Logged your first day of data", "icon": "🌟",
     "category": "milestone", "requirement": {"type": "first_log"}},
    {"name": "7-Day Streak", "description": "Logged data for 7 consecutive days", "icon": "🔥",
     "category": "streak", "requirement": {"type": "streak", "days": 7}},
    {"name": "30-Day Streak", "description": "Logged data for 30 consecutive days", "icon": "💪",
     "category": "streak", "requirement": {"type": "streak", "days": 30}},
    {"name": "Period Tracker", "description": "Tracked your first period", "icon": "🌸",
     "category": "milestone", "requirement": {"type": "first_period"}},
    {"name": "Symptom Logger", "description": "Logged symptoms for 10 days", "icon": "📊",
     "category": "milestone", "requirement": {"type": "symptom_logs", "count": 10}},
    {"name": "Wellness Warrior", "description": "Maintained consistent logging for 3 months", "icon": "🏆",
     "category": "milestone", "requirement": {"type": "consistent_logging", "months": 3}},
    {"name": "Self-Care Champion", "description": "Logged mood and energy for 20 days", "icon": "💖",
     "category": "milestone", "requirement": {"type": "mood_energy_logs", "count": 20}},
    {"name": "Cycle Master", "description": "Completed three full cycles of tracking", "icon": "🌙",
     "category": "challenge", "requirement": {"type": "challenge"}},
    {"name": "Consistency Queen", "description": "Logged most days of a month", "icon": "👑",
     "category": "challenge", "requirement": {"type": "challenge"}},
]

# (name, description, type, target, target_type, badge name)
DEFAULT_CHALLENGES = [
    ("Weekly Wellness", "Complete 7 consecutive days of logging",
     "daily_logging", 7, "days", "7-Day Streak"),
    ("Cycle Tracker", "Track three complete cycles",
     "period_tracking", 3, "cycles", "Cycle Master"),
    ("Symptom Awareness", "Log how you feel on 20 days this month",
     "symptom_awareness", 20, "logs", "Symptom Logger"),
    ("Mood Tracker", "Track your mood on 20 days this month",
     "mood_tracking", 20, "logs", "Self-Care Champion"),
    ("Consistency Champion", "Log on 80% of the last 30 days",
     "consistency", 80, "percentage", "Consistency Queen"),
]

DEFAULT_AFFIRMATIONS = [
    ("Your body is wise and knows how to heal itself.", "body-positive"),
    ("You are worthy of love and care, especially from yourself.", "self-care"),
    ("Every cycle is a reminder of your body's incredible strength.", "body-positive"),
    ("Taking time to rest is not laziness, it's necessary self-care.", "self-care"),
    ("You are more resilient than you know.", "motivation"),
    ("Your feelings are valid, and it's okay to honor them.", "self-care"),
    ("Progress, not perfection, is what matters.", "motivation"),
    ("You are learning to listen to your body's signals.", "self-care"),
    ("Today is a new opportunity to care for yourself.", "motivation"),
    ("Your journey of self-discovery is beautiful and unique.", "motivation"),
    ("You have the power to make choices that honor your wellbeing.", "motivation"),
    ("Tracking your patterns helps you understand yourself better.", "motivation"),
    ("Your body deserves kindness and compassion.", "body-positive"),
    ("It's okay to have difficult days. Tomorrow is a fresh start.", "self-care"),
    ("You are becoming more in tune with your body's needs.", "self-care"),
]


def seed_catalog(session: Session):
    if not session.exec(select(Symptom)).first():
        for name, category in DEFAULT_SYMPTOMS:
            session.add(Symptom(name=name, category=category, is_default=True))
        log.info("Seeded %d symptoms", len(DEFAULT_SYMPTOMS))

    if not session.exec(select(Badge)).first():
        for b in DEFAULT_BADGES:
            session.add(Badge(**b))
        session.flush()
        log.info("Seeded %d badges", len(DEFAULT_BADGES))

    if not session.exec(select(Challenge)).first():
        badges = {b.name: b.id for b in session.exec(select(Badge)).all()}
        for name, desc, typ, target, target_type, badge in DEFAULT_CHALLENGES:
            session.add(Challenge(
                name=name, description=desc, type=typ, target=target, target_type=target_type,
                start_date=datetime.utcnow().date(), badge_id=badges.get(badge),
            ))
        log.info("Seeded %d challenges", len(DEFAULT_CHALLENGES))

    if not session.exec(select(Affirmation)).first():
        for message, category in DEFAULT_AFFIRMATIONS:
            session.add(Affirmation(message=message, category=category))
        log.info("Seeded %d affirmations", len(DEFAULT_AFFIRMATIONS))

    session.commit()


if __name__ == "__main__":
    from .db import init_db
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_db()
