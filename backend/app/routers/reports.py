"""Report API routes — one endpoint, the report kind selects the record shape."""
import logging
from datetime import datetime
from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import ValidationFailedError
from app.schemas.report import Report
from app.services import report_service
from app.services.permission_service import resolve_actor

logger = logging.getLogger(__name__)
router = APIRouter()

ReportKind = Literal["admin", "event_manager", "events", "guests", "audit"]


def _required(value: Optional[str], field: str) -> str:
    if not value:
        raise ValidationFailedError(f"{field} is required for this report", field=field)
    return value


@router.get("/{kind}", response_model=Report)
def get_report(
    kind: ReportKind,
    actor_user_id: str = Query(...),
    user_id: Optional[str] = Query(None, description="Admin or event manager the report is about"),
    event_id: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    checked_in_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    actor = resolve_actor(db, actor_user_id)
    if kind == "admin":
        return report_service.admin_report(db, actor, _required(user_id, "user_id"), start, end)
    if kind == "event_manager":
        return report_service.event_manager_report(db, actor, _required(user_id, "user_id"), start, end)
    if kind == "events":
        return report_service.events_report(db, actor, start, end, event_id)
    if kind == "guests":
        return report_service.guests_report(db, actor, _required(event_id, "event_id"), start, end, checked_in_only)
    return report_service.audit_report(db, actor, start, end, actor_id=user_id, event_id=event_id)
