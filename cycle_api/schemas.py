from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, StrictBool, field_validator
from datetime import datetime, date

Mood = Literal["happy", "content", "neutral", "sad", "angry", "anxious"]
Priority = Literal["low", "medium", "high"]

# ---- auth ----
class SignupRequest(BaseModel):
    name: str
    email: str
    password: str
    age: Optional[int] = Field(None, ge=8, le=120)
    average_cycle_length: Optional[int] = Field(None, ge=15, le=60)
    average_period_length: Optional[int] = Field(None, ge=1, le=15)

class LoginRequest(BaseModel):
    email: str
    password: str

class UserOut(BaseModel):
    id: int
    email: str
    name: str
    age: Optional[int] = None
    is_email_verified: bool = False
    created_at: datetime

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut

# ---- profile / cycles ----
class ProfileOut(BaseModel):
    user_id: int
    average_cycle_length: int
    average_period_length: int
    last_period_start: Optional[date] = None
    timezone: str
    updated_at: datetime

class ProfileUpdate(BaseModel):
    average_cycle_length: Optional[int] = Field(None, ge=15, le=60)
    average_period_length: Optional[int] = Field(None, ge=1, le=15)
    last_period_start: Optional[date] = None
    timezone: Optional[str] = None

class CycleOut(BaseModel):
    id: int
    start_date: date
    end_date: Optional[date] = None
    cycle_length: Optional[int] = None
    period_length: Optional[int] = None
    is_active: bool
    notes: Optional[str] = None

class PredictionOut(BaseModel):
    id: int
    predicted_period_start: date
    predicted_period_end: date
    predicted_ovulation: Optional[date] = None
    fertility_window_start: Optional[date] = None
    fertility_window_end: Optional[date] = None
    confidence: int
    algorithm_version: str
    created_at: datetime

# ---- daily logs ----
class SymptomEntry(BaseModel):
    name: str
    severity: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = None

class DailyLogCreate(BaseModel):
    user_id: Optional[int] = None
    day: date
    mood: Optional[Mood] = None
    pain_level: Optional[int] = Field(None, ge=0, le=10)
    energy_level: Optional[int] = Field(None, ge=0, le=10)
    water_intake: Optional[int] = Field(None, ge=0)
    sleep_hours: Optional[float] = Field(None, ge=0, le=24)
    exercise_minutes: Optional[int] = Field(None, ge=0)
    weight: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = None
    is_on_period: bool = False
    symptoms: List[SymptomEntry] = []

    @field_validator("symptoms", mode="before")
    @classmethod
    def _names_to_entries(cls, v):
        # plain symptom names are accepted as well as {name, severity} objects
        return [{"name": s} if isinstance(s, str) else s for s in (v or [])]

class SymptomOut(BaseModel):
    name: str
    category: Optional[str] = None
    severity: Optional[int] = None

class DailyLogOut(BaseModel):
    id: int
    user_id: int
    day: date
    mood: Optional[str] = None
    pain_level: Optional[int] = None
    energy_level: Optional[int] = None
    water_intake: Optional[int] = None
    sleep_hours: Optional[float] = None
    exercise_minutes: Optional[int] = None
    weight: Optional[float] = None
    notes: Optional[str] = None
    is_on_period: bool
    symptoms: List[SymptomOut] = []
    created_at: datetime

class SymptomCatalogOut(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    is_default: bool

# ---- notifications ----
class NotificationCreate(BaseModel):
    type: str = Field(min_length=1)
    title: str = Field(min_length=1)
    message: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None

class NotificationUpdate(BaseModel):
    is_read: StrictBool
    clicked: Optional[StrictBool] = None

class NotificationOut(BaseModel):
    id: int
    type: str
    title: str
    message: Optional[str] = None
    is_read: bool
    scheduled_for: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime

class NotificationList(BaseModel):
    notifications: List[NotificationOut]
    unread_count: int
    has_more: bool

class BulkNotificationRequest(BaseModel):
    action: Literal["markAllAsRead", "markAsRead", "markAsUnread", "delete", "deleteAll"]
    notification_ids: List[int] = []

# ---- reminder settings ----
class ReminderSettingCreate(BaseModel):
    type: str = Field(min_length=1)
    is_enabled: bool = True
    time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}(:\d{2})?$")
    frequency: Optional[str] = None
    custom_interval: Optional[int] = Field(None, ge=1)
    message: Optional[str] = None

class ReminderSettingUpdate(BaseModel):
    is_enabled: Optional[bool] = None
    time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}(:\d{2})?$")
    frequency: Optional[str] = None
    custom_interval: Optional[int] = Field(None, ge=1)
    message: Optional[str] = None

class ReminderSettingOut(BaseModel):
    id: int
    type: str
    is_enabled: bool
    time: Optional[str] = None
    frequency: Optional[str] = None
    custom_interval: Optional[int] = None
    message: Optional[str] = None
    updated_at: datetime

# ---- push ----
class PushKeys(BaseModel):
    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)

class PushSubscriptionIn(BaseModel):
    endpoint: str = Field(min_length=1)
    keys: PushKeys

class PushSubscribeRequest(BaseModel):
    subscription: PushSubscriptionIn
    user_agent: Optional[str] = None

class PushTestRequest(BaseModel):
    title: str = "Test Notification"
    message: str = "This is a test push notification from your cycle tracker."

# ---- todos ----
class TodoCreate(BaseModel):
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Priority = "medium"
    due_date: Optional[date] = None
    is_default: bool = False

class TodoUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[date] = None
    is_completed: Optional[bool] = None

class TodoOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    is_completed: bool
    is_default: bool
    category: Optional[str] = None
    priority: str
    due_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime

class TodoStats(BaseModel):
    total: int
    completed: int
    pending: int

class TodoList(BaseModel):
    todos: List[TodoOut]
    stats: TodoStats

# ---- settings ----
class SettingsUpdate(BaseModel):
    settings: Dict[str, Any]
