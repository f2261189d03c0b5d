from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from ..auth import get_owner
from ..db import get_session
from ..insights import notification_analytics
from ..models import Notification, User
from ..notifications import service as notify
from ..schemas import (BulkNotificationRequest, NotificationCreate, NotificationList,
                       NotificationOut, NotificationUpdate)

router = APIRouter(prefix="/api/users/{user_id}/notifications", tags=["Notifications"])

ID_ACTIONS = {"markAsRead", "markAsUnread", "delete"}


def notification_out(n: Notification) -> NotificationOut:
    return NotificationOut(**n.model_dump(exclude={"meta"}), metadata=n.meta)


def _own(session: Session, user_id: int, notification_id: int) -> Notification:
    n = session.get(Notification, notification_id)
    if not n or n.user_id != user_id: raise HTTPException(404, "Notification not found")
    return n


@router.get("", response_model=NotificationList)
def notification_list(unread: bool = False, limit: int = Query(50, ge=1, le=200), offset: int = Query(0, ge=0),
                      user: User = Depends(get_owner), session: Session = Depends(get_session)):
    q = select(Notification).where(Notification.user_id == user.id)
    if unread:
        q = q.where(Notification.is_read == False)  # noqa: E712
    # one extra row tells us whether another page exists
    rows = session.exec(
        q.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(offset).limit(limit + 1)
    ).all()
    return NotificationList(
        notifications=[notification_out(n) for n in rows[:limit]],
        unread_count=notify.unread_count(session, user.id),
        has_more=len(rows) > limit,
    )


@router.post("", response_model=NotificationOut, status_code=201)
def notification_create(req: NotificationCreate, user: User = Depends(get_owner), session: Session = Depends(get_session)):
    if req.scheduled_for:
        n = notify.schedule(session, user.id, req.type, req.title, req.message, req.metadata, req.scheduled_for)
    else:
        n = notify.send_immediate(session, user.id, req.type, req.title, req.message, req.metadata)
    return notification_out(n)


@router.get("/analytics")
def notification_stats(range_: Literal["7d", "30d", "90d"] = Query("7d", alias="range"),
                       user: User = Depends(get_owner), session: Session = Depends(get_session)):
    return notification_analytics(session, user.id, range_)


@router.post("/bulk")
def notification_bulk(req: BulkNotificationRequest, user: User = Depends(get_owner), session: Session = Depends(get_session)):
    if req.action in ID_ACTIONS and not req.notification_ids:
        raise HTTPException(400, "notification_ids is required for this action")
    q = select(Notification).where(Notification.user_id == user.id)
    if req.action in ID_ACTIONS:
        q = q.where(Notification.id.in_(req.notification_ids))
    if req.action == "markAllAsRead":
        q = q.where(Notification.is_read == False)  # noqa: E712
    rows = session.exec(q).all()

    if req.action in ("delete", "deleteAll"):
        for n in rows:
            session.delete(n)
    else:
        flag = req.action != "markAsUnread"
        for n in rows:
            n.is_read = flag
            session.add(n)
    session.commit()
    return {"success": True, "action": req.action, "affected_count": len(rows)}


@router.patch("/{notification_id}", response_model=NotificationOut)
def notification_update(notification_id: int, req: NotificationUpdate,
                        user: User = Depends(get_owner), session: Session = Depends(get_session)):
    n = _own(session, user.id, notification_id)
    n.is_read = req.is_read
    if req.clicked is not None:
        n.meta = {**(n.meta or {}), "clicked": req.clicked}
    session.add(n); session.commit(); session.refresh(n)
    return notification_out(n)


@router.delete("/{notification_id}")
def notification_delete(notification_id: int, user: User = Depends(get_owner), session: Session = Depends(get_session)):
    n = _own(session, user.id, notification_id)
    session.delete(n); session.commit()
    return {"success": True}
