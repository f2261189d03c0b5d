import logging
import os
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..config import settings
from ..db import get_session

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


@router.get("/health")
def health(session: Session = Depends(get_session)):
    try:
        session.connection().execute(text("SELECT 1"))
        db = {"status": "healthy"}
    except SQLAlchemyError as e:
        log.error("Database health check failed: %s", e)
        db = {"status": "unhealthy", "error": str(e)}
    healthy = db["status"] == "healthy"
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {
            "database_url": "present" if os.getenv("DATABASE_URL") else "default",
            "jwt_secret": "present" if os.getenv("JWT_SECRET") else "default",
            "push": "configured" if settings.vapid_configured else "disabled",
            "database": db,
        },
    }
    return JSONResponse(body, status_code=200 if healthy else 503)
