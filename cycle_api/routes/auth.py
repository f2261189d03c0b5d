import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..auth import create_token, get_user, hash_password, verify_password
from ..challenges import initialize_user_challenges
from ..db import get_session
from ..models import User, UserSetting
from ..schemas import LoginRequest, SignupRequest, TokenResponse, UserOut
from ..tracking import ensure_profile, init_streaks

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

DEFAULT_SETTINGS = {"theme": "light", "language": "en", "dataRetentionDays": 365}


def user_out(u: User) -> UserOut:
    return UserOut(**u.model_dump())


@router.post("/signup", response_model=TokenResponse, status_code=201)
def signup(req: SignupRequest, session: Session = Depends(get_session)):
    name, email = req.name.strip(), req.email.strip().lower()
    if not name or not email or not req.password:
        raise HTTPException(400, "Name, email, and password are required")
    if session.exec(select(User).where(User.email == email)).first():
        raise HTTPException(409, "Email address is already registered")

    u = User(email=email, name=name, age=req.age, password_hash=hash_password(req.password))
    session.add(u)
    try:
        session.flush()
    except IntegrityError:
        # lost a race with a concurrent signup for the same email
        session.rollback()
        raise HTTPException(409, "Email address is already registered")

    ensure_profile(session, u.id,
                   average_cycle_length=req.average_cycle_length or 28,
                   average_period_length=req.average_period_length or 5)
    for k, v in DEFAULT_SETTINGS.items():
        session.add(UserSetting(user_id=u.id, key=k, value=v))
    init_streaks(session, u.id)
    initialize_user_challenges(session, u.id)
    session.commit(); session.refresh(u)
    log.info("New user %s signed up", u.id)
    return TokenResponse(access_token=create_token(str(u.id)), user=user_out(u))


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, session: Session = Depends(get_session)):
    u = session.exec(select(User).where(User.email == req.email.strip().lower())).first()
    if not u or not verify_password(req.password, u.password_hash):
        raise HTTPException(401, "Invalid credentials")
    return TokenResponse(access_token=create_token(str(u.id)), user=user_out(u))


@router.get("/verify")
def verify(user: User = Depends(get_user)):
    return {"success": True, "user": user_out(user)}
