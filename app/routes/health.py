import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, text
from datetime import datetime

from app.database import get_session

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/check")
def health_check(request: Request, session: Session = Depends(get_session)):
    storage_status = "ok"

    try:
        # visitor storage table, not just the connection
        session.exec(text("SELECT 1 FROM stored_value LIMIT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Storage check failed: {e}")
        storage_status = "failed"

    return {
        "status": "ok" if storage_status == "ok" else "degraded",
        "storage": storage_status,
        "live_sessions": len(request.app.state.sessions),
        "timestamp": datetime.utcnow().isoformat()
    }
