"""Audit trail API routes (read-only)."""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.audit_log import AuditAction
from app.schemas.audit import AuditOut, AuditSummaryOut
from app.services import audit_service
from app.services.permission_service import resolve_actor

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[AuditOut])
def list_audit_entries(
    actor_user_id: str = Query(...),
    event_id: Optional[str] = Query(None),
    actor_id: Optional[str] = Query(None),
    action: Optional[AuditAction] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
):
    """Chronological audit entries, filtered."""
    actor = resolve_actor(db, actor_user_id)
    return audit_service.list_visible_entries(
        db, actor, event_id=event_id, actor_id=actor_id, action=action, start=start, end=end,
    )


@router.get("/summary", response_model=AuditSummaryOut)
def audit_summary(
    actor_user_id: str = Query(...),
    event_id: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
):
    """Counts per action over the visible entries."""
    actor = resolve_actor(db, actor_user_id)
    entries = audit_service.list_visible_entries(db, actor, event_id=event_id, start=start, end=end)
    return AuditSummaryOut(total_actions=len(entries), action_counts=audit_service.count_by_action(entries))
