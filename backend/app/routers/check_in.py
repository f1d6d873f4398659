"""Door check-in API routes.

Every call answers 200 with one of SUCCESS, DUPLICATE or INVALID; only an
unauthorized actor gets an error status.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.check_in import CheckInOut, CodeCheckIn, EventScope, QrCheckIn
from app.services import check_in_service
from app.services.permission_service import resolve_actor

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/code", response_model=CheckInOut)
def check_in_by_code(payload: CodeCheckIn, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Check in with a typed access code."""
    actor = resolve_actor(db, actor_user_id)
    result = check_in_service.check_in_by_code(db, actor, payload.code, payload.event_id)
    return CheckInOut.model_validate(result)


@router.post("/qr", response_model=CheckInOut)
def check_in_by_qr(payload: QrCheckIn, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Check in with a scanned QR payload."""
    actor = resolve_actor(db, actor_user_id)
    result = check_in_service.check_in_by_qr(db, actor, payload.qr_data, payload.event_id)
    return CheckInOut.model_validate(result)


@router.post("/guests/{guest_id}", response_model=CheckInOut)
def check_in_guest(
    guest_id: str,
    payload: Optional[EventScope] = None,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """Check in from the guest list (by guest id)."""
    actor = resolve_actor(db, actor_user_id)
    result = check_in_service.check_in(db, actor, guest_id, payload.event_id if payload else None)
    return CheckInOut.model_validate(result)
