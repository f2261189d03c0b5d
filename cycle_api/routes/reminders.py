from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from ..auth import get_owner
from ..db import get_session
from ..models import ReminderSetting, User
from ..schemas import ReminderSettingCreate, ReminderSettingOut, ReminderSettingUpdate

router = APIRouter(prefix="/api/users/{user_id}/reminder-settings", tags=["Reminders"])


def _own(session: Session, user_id: int, setting_id: int) -> ReminderSetting:
    r = session.get(ReminderSetting, setting_id)
    if not r or r.user_id != user_id: raise HTTPException(404, "Reminder setting not found")
    return r


@router.get("", response_model=List[ReminderSettingOut])
def reminder_list(user: User = Depends(get_owner), session: Session = Depends(get_session)):
    rows = session.exec(select(ReminderSetting).where(ReminderSetting.user_id == user.id).order_by(ReminderSetting.type)).all()
    return [ReminderSettingOut(**r.model_dump()) for r in rows]


@router.post("", response_model=ReminderSettingOut, status_code=201)
def reminder_create(req: ReminderSettingCreate, user: User = Depends(get_owner), session: Session = Depends(get_session)):
    exists = session.exec(
        select(ReminderSetting).where(ReminderSetting.user_id == user.id, ReminderSetting.type == req.type)
    ).first()
    if exists:
        raise HTTPException(409, "Reminder setting already exists for this type")
    r = ReminderSetting(user_id=user.id, **req.model_dump())
    session.add(r); session.commit(); session.refresh(r)
    return ReminderSettingOut(**r.model_dump())


@router.put("/{setting_id}", response_model=ReminderSettingOut)
def reminder_update(setting_id: int, req: ReminderSettingUpdate,
                    user: User = Depends(get_owner), session: Session = Depends(get_session)):
    r = _own(session, user.id, setting_id)
    for f, v in req.model_dump(exclude_unset=True).items():
        setattr(r, f, v)
    r.updated_at = datetime.utcnow()
    session.add(r); session.commit(); session.refresh(r)
    return ReminderSettingOut(**r.model_dump())


@router.delete("/{setting_id}")
def reminder_delete(setting_id: int, user: User = Depends(get_owner), session: Session = Depends(get_session)):
    r = _own(session, user.id, setting_id)
    session.delete(r); session.commit()
    return {"success": True}
