from datetime import date, datetime, timedelta

import pytest
from sqlmodel import Session, select

from cycle_api.config import settings
from cycle_api.db import engine
from cycle_api.models import DailyLog, Notification, PeriodDay, ReminderSetting, UserProfile
from cycle_api.notifications import service
from cycle_api.notifications.scheduler import (check_insights, check_log_reminders,
                                               check_period_reminders, local_now,
                                               log_reminder_due, run_scheduled_tasks)


def notifications(uid, ntype):
    with Session(engine) as s:
        return s.exec(select(Notification).where(Notification.user_id == uid, Notification.type == ntype)).all()


def enable(session, uid, kind, time=None):
    session.add(ReminderSetting(user_id=uid, type=kind, time=time))
    session.commit()


@pytest.mark.parametrize("offset,expected", [(25, 3), (26, None), (27, 1), (28, None)])
def test_period_reminder_three_and_one_day_before(make_user, session, offset, expected):
    uid, _ = make_user()
    today = datetime.utcnow().date()
    enable(session, uid, "period")
    session.add(PeriodDay(user_id=uid, day=today - timedelta(days=offset)))
    session.commit()

    sent = check_period_reminders(session, today)
    rows = notifications(uid, "period_reminder")
    if expected is None:
        assert sent == 0 and rows == []
    else:
        assert sent == 1
        assert rows[0].meta["daysUntil"] == expected
        # a second tick the same day does not repeat it
        assert check_period_reminders(session, today) == 0


def test_period_reminder_respects_disabled_setting(make_user, session):
    uid, _ = make_user()
    today = datetime.utcnow().date()
    session.add(ReminderSetting(user_id=uid, type="period", is_enabled=False))
    session.add(PeriodDay(user_id=uid, day=today - timedelta(days=25)))
    session.commit()
    assert check_period_reminders(session, today) == 0


def test_log_reminder_sent_once(make_user, session):
    uid, _ = make_user()
    enable(session, uid, "log", "00:00")
    now = datetime.utcnow()
    assert check_log_reminders(session, now) == 1
    assert check_log_reminders(session, now) == 0
    assert len(notifications(uid, "log_reminder")) == 1


def test_no_log_reminder_after_logging(make_user, session):
    uid, _ = make_user()
    enable(session, uid, "log", "00:00")
    now = datetime.utcnow()
    session.add(DailyLog(user_id=uid, day=now.date()))
    session.commit()
    assert check_log_reminders(session, now) == 0


def set_timezone(session, uid, tz):
    p = session.exec(select(UserProfile).where(UserProfile.user_id == uid)).one()
    p.timezone = tz
    session.add(p)
    session.commit()


def backdate(nid, when):
    with Session(engine) as s:
        n = s.get(Notification, nid)
        n.created_at = when
        s.add(n)
        s.commit()


def test_log_reminder_dedupe_follows_local_day(make_user, session):
    uid, _ = make_user()
    set_timezone(session, uid, "Asia/Tokyo")
    enable(session, uid, "log", "08:00")

    # 2025-01-01 14:00 UTC is 23:00 on Jan 1 in Tokyo, the previous local day
    previous = service.create_log_reminder(session, uid).id
    backdate(previous, datetime(2025, 1, 1, 14, 0))

    # 08:30 on Jan 2 in Tokyo
    first = datetime(2025, 1, 1, 23, 30)
    assert check_log_reminders(session, first) == 1
    backdate(max(n.id for n in notifications(uid, "log_reminder")), first)

    # 09:30 on the same local day, but a new UTC day
    assert check_log_reminders(session, datetime(2025, 1, 2, 0, 30)) == 0
    assert len(notifications(uid, "log_reminder")) == 2


def test_sent_today_window_in_local_time(make_user, session):
    uid, _ = make_user()
    n = service.create_log_reminder(session, uid)
    backdate(n.id, datetime(2025, 1, 1, 23, 30))
    assert service.sent_today(session, uid, "log_reminder", date(2025, 1, 2), "Asia/Tokyo")
    assert not service.sent_today(session, uid, "log_reminder", date(2025, 1, 2))
    assert service.sent_today(session, uid, "log_reminder", date(2025, 1, 1))


def test_log_reminder_due():
    evening = datetime(2025, 1, 1, 20, 15)
    assert log_reminder_due("20:00", evening)
    assert log_reminder_due("19:30:00", evening)
    assert not log_reminder_due("20:30", evening)
    assert not log_reminder_due("21:00", evening)
    assert log_reminder_due(None, evening)
    assert not log_reminder_due(None, datetime(2025, 1, 1, 19, 59))


def test_local_now():
    utc = datetime(2025, 1, 1, 23, 30)
    assert local_now(utc, "Asia/Tokyo") == datetime(2025, 1, 2, 8, 30)
    assert local_now(utc, "Not/AZone") == utc


def test_high_pain_insight(make_user, session):
    uid, _ = make_user()
    today = datetime.utcnow().date()
    # every other day, so no streak milestone
    for i, pain in enumerate([8, 9, 7, 2, 2, 2, 2]):
        session.add(DailyLog(user_id=uid, day=today - timedelta(days=2 * i + 1), pain_level=pain))
    session.commit()

    assert check_insights(session, today) == 1
    rows = notifications(uid, "cycle_insight")
    assert rows[0].meta["data"]["painDays"] == 3
    assert check_insights(session, today) == 0


def test_streak_milestone(make_user, session):
    uid, _ = make_user()
    today = datetime.utcnow().date()
    for i in range(7):
        session.add(DailyLog(user_id=uid, day=today - timedelta(days=i)))
    session.commit()
    assert check_insights(session, today) == 1
    assert "7-day" in notifications(uid, "achievement")[0].message


def test_too_few_logs_no_insight(make_user, session):
    uid, _ = make_user()
    today = datetime.utcnow().date()
    session.add(DailyLog(user_id=uid, day=today, pain_level=9))
    session.commit()
    assert check_insights(session, today) == 0


def test_run_summary(make_user, session):
    make_user()
    summary = run_scheduled_tasks(session)
    assert summary == {"processed": 0, "period_reminders": 0, "log_reminders": 0, "insights": 0}


def test_cron_endpoint_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
    assert client.post("/api/cron/notifications").status_code == 401
    assert client.post("/api/cron/notifications", headers={"Authorization": "Bearer nope"}).status_code == 401
    r = client.post("/api/cron/notifications", headers={"Authorization": "Bearer s3cret"})
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert "summary" in r.json()

    assert client.get("/api/cron/notifications", params={"secret": "nope"}).status_code == 401
    assert client.get("/api/cron/notifications", params={"secret": "s3cret"}).status_code == 200


def test_cron_open_without_secret(client):
    assert client.post("/api/cron/notifications").status_code == 200
