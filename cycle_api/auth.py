import time, jwt
from fastapi import Depends, Header, HTTPException
from passlib.context import CryptContext
from sqlmodel import Session
from typing import Optional

from .config import settings
from .db import get_session
from .models import User

JWT_ALG = "HS256"
pwd = CryptContext(schemes=["bcrypt"], deprecated="auto")

def hash_password(p:str)->str: return pwd.hash(p)
def verify_password(p, h)->bool: return pwd.verify(p, h)

def create_token(sub:str, exp:Optional[int]=None):
    payload = {"sub":sub, "exp":int(time.time())+(exp or settings.JWT_EXPIRE_SECONDS)}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALG)

def decode_token(token:str)->Optional[dict]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALG])
    except jwt.PyJWTError:
        return None

def get_user(authorization: Optional[str] = Header(None), session: Session = Depends(get_session)) -> User:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(401, "Missing token")
    parts = authorization.split()
    token = parts[1] if len(parts) > 1 else None
    payload = decode_token(token) if token else None
    if not payload or not str(payload.get("sub", "")).isdigit():
        raise HTTPException(401, "Invalid token")
    u = session.get(User, int(payload["sub"]))
    if not u: raise HTTPException(401, "User not found")
    return u

def get_owner(user_id: int, user: User = Depends(get_user)) -> User:
    """Token user, which must be the `{user_id}` the route is scoped to."""
    if user.id != user_id:
        raise HTTPException(403, "Forbidden")
    return user
