from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from ..auth import get_user
from ..db import get_session
from ..models import User, UserSetting
from ..schemas import SettingsUpdate

router = APIRouter(prefix="/api/settings", tags=["Settings"])


def _as_dict(session: Session, user_id: int) -> dict:
    rows = session.exec(select(UserSetting).where(UserSetting.user_id == user_id)).all()
    return {r.key: r.value for r in rows}


@router.get("")
def settings_get(user: User = Depends(get_user), session: Session = Depends(get_session)):
    return {"settings": _as_dict(session, user.id)}


@router.put("")
def settings_update(req: SettingsUpdate, user: User = Depends(get_user), session: Session = Depends(get_session)):
    existing = {r.key: r for r in session.exec(select(UserSetting).where(UserSetting.user_id == user.id)).all()}
    now = datetime.utcnow()
    for key, value in req.settings.items():
        row = existing.get(key) or UserSetting(user_id=user.id, key=key)
        row.value = value
        row.updated_at = now
        session.add(row)
    session.commit()
    return {"success": True, "settings": _as_dict(session, user.id)}


@router.delete("/{key}")
def settings_delete(key: str, user: User = Depends(get_user), session: Session = Depends(get_session)):
    row = session.exec(select(UserSetting).where(UserSetting.user_id == user.id, UserSetting.key == key)).first()
    if not row: raise HTTPException(404, "Setting not found")
    session.delete(row); session.commit()
    return {"success": True}
