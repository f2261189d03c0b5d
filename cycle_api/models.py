from typing import Any, Optional
from datetime import datetime, date
from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)  # stored lower-cased
    password_hash: str
    name: str
    age: Optional[int] = None
    is_email_verified: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class UserProfile(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, unique=True)
    average_cycle_length: int = 28
    average_period_length: int = 5
    last_period_start: Optional[date] = None
    timezone: str = "UTC"
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class Cycle(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    start_date: date = Field(index=True)
    end_date: Optional[date] = None
    cycle_length: Optional[int] = None
    period_length: Optional[int] = None
    is_active: bool = True
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class PeriodDay(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    cycle_id: Optional[int] = Field(default=None, foreign_key="cycle.id")
    day: date = Field(index=True)
    flow_intensity: Optional[str] = None  # light | medium | heavy | spotting
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

class DailyLog(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "day", name="uq_dailylog_user_day"),)
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    day: date = Field(index=True)
    mood: Optional[str] = None  # happy | content | neutral | sad | angry | anxious
    pain_level: Optional[int] = None  # 0-10
    energy_level: Optional[int] = None  # 0-10
    water_intake: Optional[int] = None  # glasses
    sleep_hours: Optional[float] = None
    exercise_minutes: Optional[int] = None
    weight: Optional[float] = None
    notes: Optional[str] = None
    is_on_period: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class Symptom(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    category: Optional[str] = None  # physical | emotional | other
    is_default: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)

class DailyLogSymptom(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    daily_log_id: int = Field(foreign_key="dailylog.id", index=True)
    symptom_id: int = Field(foreign_key="symptom.id", index=True)
    severity: Optional[int] = None  # 1-5
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

class CyclePrediction(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    predicted_period_start: date
    predicted_period_end: date
    predicted_ovulation: Optional[date] = None
    fertility_window_start: Optional[date] = None
    fertility_window_end: Optional[date] = None
    confidence: int = 70
    algorithm_version: str = "v1.0"
    created_at: datetime = Field(default_factory=datetime.utcnow)

class Badge(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    description: str
    icon: Optional[str] = None
    category: Optional[str] = None  # streak | milestone | challenge
    requirement: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)

class UserBadge(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    badge_id: int = Field(foreign_key="badge.id", index=True)
    earned_at: datetime = Field(default_factory=datetime.utcnow)
    progress: Optional[dict] = Field(default=None, sa_column=Column(JSON))

class Streak(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    type: str  # logging | water | exercise
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: Optional[date] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class Challenge(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: str
    type: str  # daily_logging | period_tracking | symptom_awareness | mood_tracking | consistency
    target: int
    target_type: str  # days | cycles | logs | percentage
    start_date: date
    end_date: Optional[date] = None
    is_active: bool = True
    badge_id: Optional[int] = Field(default=None, foreign_key="badge.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)

class UserChallenge(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    challenge_id: int = Field(foreign_key="challenge.id", index=True)
    current_progress: int = 0
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    joined_at: datetime = Field(default_factory=datetime.utcnow)

class ReminderSetting(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    type: str  # period | pill | log | water | insight | achievement
    is_enabled: bool = True
    time: Optional[str] = None  # HH:MM or HH:MM:SS
    frequency: Optional[str] = None  # daily | weekly | custom
    custom_interval: Optional[int] = None
    message: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    type: str = Field(index=True)
    title: str
    message: Optional[str] = None
    is_read: bool = False
    scheduled_for: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    # "metadata" is reserved on SQLModel classes
    meta: Optional[dict] = Field(default=None, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=datetime.utcnow)

class PushSubscription(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    endpoint: str = Field(index=True)
    p256dh_key: str
    auth_key: str
    user_agent: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class UserSetting(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    key: str
    value: Any = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class Todo(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    title: str
    description: Optional[str] = None
    is_completed: bool = False
    is_default: bool = False
    category: Optional[str] = None
    priority: str = "medium"  # low | medium | high
    due_date: Optional[date] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class Affirmation(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    message: str
    category: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
