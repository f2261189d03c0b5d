from datetime import datetime, timedelta
from types import SimpleNamespace

from pywebpush import WebPushException
from sqlmodel import Session, select

from cycle_api.db import engine
from cycle_api.models import PushSubscription
from cycle_api.notifications import push
from cycle_api.notifications.service import process_scheduled

SUB = {"endpoint": "https://push.example.com/abc", "keys": {"p256dh": "pkey", "auth": "akey"}}


def create(client, uid, h, **body):
    body = {"type": "custom", "title": "Hello", **body}
    r = client.post(f"/api/users/{uid}/notifications", json=body, headers=h)
    assert r.status_code == 201, r.text
    return r.json()


def test_list_and_unread_count(client, make_user):
    uid, h = make_user()
    ids = [create(client, uid, h, title=f"n{i}")["id"] for i in range(3)]
    body = client.get(f"/api/users/{uid}/notifications", headers=h).json()
    assert body["unread_count"] == 3
    assert [n["id"] for n in body["notifications"]] == ids[::-1]
    assert body["has_more"] is False

    page = client.get(f"/api/users/{uid}/notifications", params={"limit": 2}, headers=h).json()
    assert len(page["notifications"]) == 2 and page["has_more"] is True

    client.delete(f"/api/users/{uid}/notifications/{ids[0]}", headers=h)
    assert client.get(f"/api/users/{uid}/notifications", headers=h).json()["unread_count"] == 2


def test_mark_read_and_clicked(client, make_user):
    uid, h = make_user()
    nid = create(client, uid, h, metadata={"source": "test"})["id"]
    r = client.patch(f"/api/users/{uid}/notifications/{nid}", json={"is_read": True, "clicked": True}, headers=h)
    assert r.status_code == 200
    assert r.json()["is_read"] is True
    assert r.json()["metadata"] == {"source": "test", "clicked": True}
    unread = client.get(f"/api/users/{uid}/notifications", params={"unread": True}, headers=h).json()
    assert unread["notifications"] == []


def test_patch_requires_boolean(client, make_user):
    uid, h = make_user()
    nid = create(client, uid, h)["id"]
    r = client.patch(f"/api/users/{uid}/notifications/{nid}", json={"is_read": "yes"}, headers=h)
    assert r.status_code == 400


def test_other_users_notification_is_not_found(client, make_user):
    a, ha = make_user()
    b, hb = make_user()
    nid = create(client, a, ha)["id"]
    assert client.delete(f"/api/users/{b}/notifications/{nid}", headers=hb).status_code == 404


def test_bulk_actions(client, make_user):
    uid, h = make_user()
    ids = [create(client, uid, h)["id"] for _ in range(4)]
    url = f"/api/users/{uid}/notifications/bulk"

    assert client.post(url, json={"action": "markAsRead"}, headers=h).status_code == 400
    r = client.post(url, json={"action": "markAsRead", "notification_ids": ids[:2]}, headers=h)
    assert r.json()["affected_count"] == 2
    r = client.post(url, json={"action": "markAllAsRead"}, headers=h)
    assert r.json()["affected_count"] == 2
    listing = client.get(f"/api/users/{uid}/notifications", headers=h).json()
    assert listing["unread_count"] == 0
    assert all(n["is_read"] for n in listing["notifications"])
    r = client.post(url, json={"action": "markAsUnread", "notification_ids": [ids[1]]}, headers=h)
    assert client.get(f"/api/users/{uid}/notifications", headers=h).json()["unread_count"] == 1
    r = client.post(url, json={"action": "delete", "notification_ids": [ids[0]]}, headers=h)
    assert r.json()["affected_count"] == 1
    r = client.post(url, json={"action": "deleteAll"}, headers=h)
    assert r.json()["affected_count"] == 3
    assert client.get(f"/api/users/{uid}/notifications", headers=h).json()["notifications"] == []


def test_scheduled_notification_is_sent_when_due(client, make_user, session):
    uid, h = make_user()
    due = datetime.utcnow() + timedelta(hours=1)
    n = create(client, uid, h, scheduled_for=due.isoformat())
    assert n["sent_at"] is None

    assert process_scheduled(session, datetime.utcnow()) == []
    results = process_scheduled(session, due + timedelta(minutes=1))
    assert [r["id"] for r in results] == [n["id"]]
    # already sent
    assert process_scheduled(session, due + timedelta(minutes=2)) == []


def test_analytics(client, make_user):
    uid, h = make_user()
    a = create(client, uid, h, type="log_reminder")["id"]
    create(client, uid, h, type="log_reminder")
    create(client, uid, h, type="achievement")
    client.patch(f"/api/users/{uid}/notifications/{a}", json={"is_read": True, "clicked": True}, headers=h)
    client.post(f"/api/users/{uid}/push/subscribe", json={"subscription": SUB},
                headers={**h, "User-Agent": "Mozilla/5.0 (Linux; Android 14) Mobile"})

    body = client.get(f"/api/users/{uid}/notifications/analytics", params={"range": "30d"}, headers=h).json()
    assert body["total_sent"] == 3
    assert body["total_read"] == 1
    assert body["total_clicked"] == 1
    assert round(body["read_rate"], 1) == 33.3
    assert len(body["by_day"]) == 30
    assert body["by_day"][-1]["sent"] == 3
    types = {t["type"]: t for t in body["by_type"]}
    assert types["log_reminder"]["read_rate"] == 50
    assert body["device_breakdown"] == [{"device_type": "Mobile", "count": 1, "active": 1}]

    bad = client.get(f"/api/users/{uid}/notifications/analytics", params={"range": "1y"}, headers=h)
    assert bad.status_code == 400


def test_reminder_settings_crud(client, make_user):
    uid, h = make_user()
    url = f"/api/users/{uid}/reminder-settings"
    r = client.post(url, json={"type": "log", "time": "20:30"}, headers=h)
    assert r.status_code == 201
    rid = r.json()["id"]
    assert client.post(url, json={"type": "log"}, headers=h).status_code == 409
    assert client.post(url, json={"type": "period", "time": "8pm"}, headers=h).status_code == 400

    r = client.put(f"{url}/{rid}", json={"is_enabled": False}, headers=h)
    assert r.json()["is_enabled"] is False
    assert r.json()["time"] == "20:30"
    assert [s["type"] for s in client.get(url, headers=h).json()] == ["log"]

    assert client.delete(f"{url}/{rid}", headers=h).status_code == 200
    assert client.delete(f"{url}/{rid}", headers=h).status_code == 404


def test_vapid_key_endpoint(client, vapid):
    assert client.get("/api/push/vapid-public-key").json() == {"public_key": "BPublicKeyForTests"}


def test_vapid_key_missing(client):
    assert client.get("/api/push/vapid-public-key").status_code == 404


def test_subscribe_is_upsert_and_unsubscribe(client, make_user):
    uid, h = make_user()
    url = f"/api/users/{uid}/push/subscribe"
    first = client.post(url, json={"subscription": SUB}, headers=h).json()["subscription_id"]
    renewed = {**SUB, "keys": {"p256dh": "new", "auth": "new"}}
    again = client.post(url, json={"subscription": renewed, "user_agent": "Desktop"}, headers=h).json()
    assert again["subscription_id"] == first

    r = client.post(f"/api/users/{uid}/push/unsubscribe", headers=h)
    assert r.json() == {"success": True, "deactivated": 1}
    with Session(engine) as s:
        row = s.get(PushSubscription, first)
        assert row.p256dh_key == "new" and row.is_active is False


def test_push_test_needs_vapid(client, make_user):
    uid, h = make_user()
    assert client.post(f"/api/users/{uid}/push/test", headers=h).status_code == 500


def test_push_test_needs_subscription(client, make_user, vapid):
    uid, h = make_user()
    assert client.post(f"/api/users/{uid}/push/test", headers=h).status_code == 404


def test_push_delivery(client, make_user, vapid, monkeypatch):
    uid, h = make_user()
    client.post(f"/api/users/{uid}/push/subscribe", json={"subscription": SUB}, headers=h)
    calls = []
    monkeypatch.setattr(push, "webpush", lambda **kw: calls.append(kw))

    r = client.post(f"/api/users/{uid}/push/test", headers=h)
    assert r.json() == {"success": True, "sent": 1, "failed": 0}
    assert calls[0]["subscription_info"]["endpoint"] == SUB["endpoint"]
    assert calls[0]["vapid_private_key"] == "private-key-for-tests"


def test_gone_subscription_is_deactivated(client, make_user, vapid, monkeypatch):
    uid, h = make_user()
    client.post(f"/api/users/{uid}/push/subscribe", json={"subscription": SUB}, headers=h)

    def gone(**kw):
        raise WebPushException("gone", response=SimpleNamespace(status_code=410))
    monkeypatch.setattr(push, "webpush", gone)

    r = client.post(f"/api/users/{uid}/push/test", headers=h)
    assert r.json() == {"success": False, "sent": 0, "failed": 1}
    with Session(engine) as s:
        assert not s.exec(select(PushSubscription).where(PushSubscription.is_active == True)).all()  # noqa: E712


def test_push_skipped_without_vapid(make_user, session):
    uid, _ = make_user()
    assert push.send_push(session, uid, "log_reminder", "Hi") == {"sent": 0, "failed": 0}
