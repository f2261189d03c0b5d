from sqlmodel import Session, select

from cycle_api.auth import create_token
from cycle_api.db import engine
from cycle_api.models import Streak, User, UserChallenge, UserProfile, UserSetting


def test_signup_creates_profile_settings_and_streaks(client):
    r = client.post("/api/auth/signup", json={
        "name": "Ana", "email": "Ana@Example.com", "password": "pw123456",
        "average_cycle_length": 30, "average_period_length": 4,
    })
    assert r.status_code == 201
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "ana@example.com"
    uid = body["user"]["id"]

    with Session(engine) as s:
        p = s.exec(select(UserProfile).where(UserProfile.user_id == uid)).one()
        assert (p.average_cycle_length, p.average_period_length) == (30, 4)
        keys = {r.key: r.value for r in s.exec(select(UserSetting).where(UserSetting.user_id == uid))}
        assert keys == {"theme": "light", "language": "en", "dataRetentionDays": 365}
        kinds = {st.type for st in s.exec(select(Streak).where(Streak.user_id == uid))}
        assert kinds == {"logging", "water", "exercise"}
        assert s.exec(select(UserChallenge).where(UserChallenge.user_id == uid)).all()


def test_duplicate_email_conflicts(client):
    body = {"name": "Ana", "email": "ana@example.com", "password": "pw123456"}
    assert client.post("/api/auth/signup", json=body).status_code == 201
    r = client.post("/api/auth/signup", json={**body, "email": "ANA@example.com"})
    assert r.status_code == 409
    assert "error" in r.json()
    with Session(engine) as s:
        assert len(s.exec(select(User)).all()) == 1


def test_signup_requires_fields(client):
    assert client.post("/api/auth/signup", json={"name": " ", "email": "a@b.c", "password": "x"}).status_code == 400
    r = client.post("/api/auth/signup", json={"email": "a@b.c"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request"


def test_login_and_verify(client, make_user):
    client.post("/api/auth/signup", json={"name": "Bo", "email": "bo@example.com", "password": "pw123456"})
    assert client.post("/api/auth/login", json={"email": "bo@example.com", "password": "nope"}).status_code == 401
    r = client.post("/api/auth/login", json={"email": "BO@example.com", "password": "pw123456"})
    assert r.status_code == 200
    token = r.json()["access_token"]
    me = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "bo@example.com"


def test_missing_or_bad_token(client):
    assert client.get("/api/auth/verify").status_code == 401
    assert client.get("/api/auth/verify", headers={"Authorization": "Bearer garbage"}).status_code == 401
    # a token for a user that does not exist
    ghost = create_token("9999")
    assert client.get("/api/auth/verify", headers={"Authorization": f"Bearer {ghost}"}).status_code == 401


def test_expired_token_rejected(client, make_user):
    uid, _ = make_user()
    token = create_token(str(uid), exp=-10)
    assert client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_user_scoped_routes_reject_other_users(client, make_user):
    a, _ = make_user()
    _, b_headers = make_user()
    r = client.get(f"/api/users/{a}/profile", headers=b_headers)
    assert r.status_code == 403
