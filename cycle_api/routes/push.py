import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlmodel import Session, select

from ..auth import get_owner
from ..config import settings
from ..db import get_session
from ..models import PushSubscription, User
from ..notifications.push import active_subscriptions, send_push
from ..schemas import PushSubscribeRequest, PushTestRequest

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Push"])


@router.get("/push/vapid-public-key")
def vapid_public_key():
    if not settings.vapid_public_key:
        raise HTTPException(404, "VAPID public key not configured")
    return {"public_key": settings.vapid_public_key}


@router.post("/users/{user_id}/push/subscribe")
def push_subscribe(req: PushSubscribeRequest, user_agent: Optional[str] = Header(None),
                   user: User = Depends(get_owner), session: Session = Depends(get_session)):
    sub = req.subscription
    row = session.exec(
        select(PushSubscription).where(PushSubscription.user_id == user.id,
                                       PushSubscription.endpoint == sub.endpoint)
    ).first()
    if row:
        row.p256dh_key, row.auth_key = sub.keys.p256dh, sub.keys.auth
        row.user_agent = req.user_agent or user_agent
        row.is_active = True
        row.updated_at = datetime.utcnow()
    else:
        row = PushSubscription(user_id=user.id, endpoint=sub.endpoint, p256dh_key=sub.keys.p256dh,
                               auth_key=sub.keys.auth, user_agent=req.user_agent or user_agent)
    session.add(row); session.commit(); session.refresh(row)
    log.info("Push subscription %s saved for user %s", row.id, user.id)
    return {"success": True, "subscription_id": row.id}


@router.post("/users/{user_id}/push/unsubscribe")
def push_unsubscribe(user: User = Depends(get_owner), session: Session = Depends(get_session)):
    rows = active_subscriptions(session, user.id)
    for row in rows:
        row.is_active = False
        row.updated_at = datetime.utcnow()
        session.add(row)
    session.commit()
    return {"success": True, "deactivated": len(rows)}


@router.post("/users/{user_id}/push/test")
def push_test(req: Optional[PushTestRequest] = None, user: User = Depends(get_owner),
              session: Session = Depends(get_session)):
    if not settings.vapid_configured:
        raise HTTPException(500, "Push notifications are not configured")
    if not active_subscriptions(session, user.id):
        raise HTTPException(404, "No active push subscriptions found")
    req = req or PushTestRequest()
    result = send_push(session, user.id, "test", req.title, req.message, {"test": True})
    return {"success": result["sent"] > 0, **result}
