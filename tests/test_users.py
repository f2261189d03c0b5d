from datetime import date, datetime, timedelta

from sqlmodel import Session

from cycle_api.db import engine
from cycle_api.models import Cycle


def test_profile_update(client, make_user):
    uid, h = make_user()
    r = client.put(f"/api/users/{uid}/profile", json={"average_cycle_length": 31, "timezone": "Europe/Paris"},
                   headers=h)
    assert r.status_code == 200
    assert r.json()["average_cycle_length"] == 31
    assert client.get(f"/api/users/{uid}/profile", headers=h).json()["timezone"] == "Europe/Paris"
    bad = client.put(f"/api/users/{uid}/profile", json={"average_cycle_length": 5}, headers=h)
    assert bad.status_code == 400


def test_calendar_uses_last_period_start(client, make_user):
    uid, h = make_user()
    today = datetime.utcnow().date()
    client.put(f"/api/users/{uid}/profile", json={"last_period_start": today.isoformat()}, headers=h)
    client.post("/api/daily-logs", json={"day": today.isoformat(), "pain_level": 4, "energy_level": 6}, headers=h)

    body = client.get(f"/api/users/{uid}/calendar",
                      params={"year": today.year, "month": today.month}, headers=h).json()
    assert body["monthly_stats"]["logged_days"] == 1
    assert body["monthly_stats"]["avg_pain"] == 4
    pred = body["predictions"]
    assert pred["next_period"] == (today + timedelta(days=28)).isoformat()
    assert pred["ovulation"] == (today + timedelta(days=14)).isoformat()
    assert body["user_settings"] == {"average_cycle_length": 28, "average_period_length": 5}


def test_calendar_without_history_has_no_prediction(client, make_user):
    uid, h = make_user()
    pred = client.get(f"/api/users/{uid}/calendar", headers=h).json()["predictions"]
    assert pred["next_period"] is None
    assert pred["fertile_window"] is None


def test_stored_prediction_needs_two_cycles(client, make_user):
    uid, h = make_user()
    assert client.post(f"/api/users/{uid}/predictions", headers=h).status_code == 400
    assert client.get(f"/api/users/{uid}/predictions", headers=h).json() == {"prediction": None}

    today = datetime.utcnow().date()
    with Session(engine) as s:
        s.add(Cycle(user_id=uid, start_date=today - timedelta(days=60), cycle_length=30, is_active=False))
        s.add(Cycle(user_id=uid, start_date=today - timedelta(days=30), cycle_length=30, is_active=False))
        s.add(Cycle(user_id=uid, start_date=today - timedelta(days=2), is_active=True))
        s.commit()

    r = client.post(f"/api/users/{uid}/predictions", headers=h)
    assert r.status_code == 201
    body = r.json()
    assert body["predicted_period_start"] == (today + timedelta(days=28)).isoformat()
    assert body["predicted_period_end"] == (today + timedelta(days=33)).isoformat()
    assert body["confidence"] == 70
    latest = client.get(f"/api/users/{uid}/predictions", headers=h).json()["prediction"]
    assert latest["id"] == body["id"]


def test_dashboard(client, make_user):
    uid, h = make_user()
    today = datetime.utcnow().date()
    for i in (1, 0):
        client.post("/api/daily-logs", json={"day": (today - timedelta(days=i)).isoformat(),
                                             "is_on_period": True}, headers=h)
    d = client.get(f"/api/users/{uid}/dashboard", headers=h).json()
    assert d["current_streak"] == 2
    assert d["total_logged"] == 2
    assert "First Log" in d["badges"]
    assert "Period Tracker" in d["badges"]
    assert d["current_cycle_day"] == 2
    assert d["affirmation"]


def test_insights(client, make_user):
    uid, h = make_user()
    today = datetime.utcnow().date()
    for i, (mood, pain) in enumerate([("happy", 2), ("happy", 4), ("sad", 6)]):
        client.post("/api/daily-logs", json={"day": (today - timedelta(days=i)).isoformat(),
                                             "mood": mood, "pain_level": pain,
                                             "symptoms": ["Cramps"]}, headers=h)
    body = client.get(f"/api/users/{uid}/insights", headers=h).json()
    assert body["total_logged"] == 3
    assert body["avg_pain_level"] == 4.0
    assert body["avg_energy_level"] == 5
    assert body["moods"][0] == {"name": "Happy", "frequency": 2}
    assert body["symptoms"] == [{"name": "Cramps", "frequency": 3}]


def test_monthly_insights(client, make_user):
    uid, h = make_user()
    for d, mood in ((date(2025, 4, 1), "happy"), (date(2025, 4, 2), "sad")):
        client.post("/api/daily-logs", json={"day": d.isoformat(), "mood": mood, "water_intake": 6}, headers=h)
    body = client.get(f"/api/users/{uid}/insights/monthly", params={"year": 2025, "month": 4}, headers=h).json()
    assert body["days_logged"] == 2
    assert body["avg_mood_score"] == 3.5
    assert body["mood_distribution"] == {"happy": 50, "sad": 50}
    assert body["avg_water_intake"] == 6


def test_badges_listing(client, make_user):
    uid, h = make_user()
    client.post("/api/daily-logs", json={"day": datetime.utcnow().date().isoformat()}, headers=h)
    body = client.get(f"/api/users/{uid}/badges", headers=h).json()
    assert [b["name"] for b in body["earned"]] == ["First Log"]
    stats = body["stats"]
    assert stats["total_earned"] == 1
    assert stats["total_available"] == len(body["available"]) + 1
