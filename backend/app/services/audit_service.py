"""Audit trail — append-only log of state-changing actions.

There is deliberately no update or delete function in this module.
``record`` only adds the entry to the session; the caller's unit of work
commits it together with the change it describes.
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.errors import PermissionDeniedError
from app.models.audit_log import AuditAction, AuditLog
from app.models.event import Event
from app.services.permission_service import Actor, Capability
from app.timeutils import as_utc

logger = logging.getLogger(__name__)


def record(
    db: Session,
    actor_id: str,
    action: AuditAction,
    event_id: Optional[str] = None,
    guest_id: Optional[str] = None,
    details: Optional[str] = None,
) -> AuditLog:
    """Append one entry to the current unit of work."""
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        event_id=event_id,
        guest_id=guest_id,
        details=details,
    )
    db.add(entry)
    logger.debug("Audit %s by %s (event=%s guest=%s)", action.value, actor_id, event_id, guest_id)
    return entry


def list_entries(
    db: Session,
    event_id: Optional[str] = None,
    actor_id: Optional[str] = None,
    action: Optional[AuditAction] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    event_ids: Optional[list[str]] = None,
) -> list[AuditLog]:
    """Filter the log; results are in chronological (creation) order.

    ``event_ids`` restricts results to a set of events, for scoped readers.
    """
    query = db.query(AuditLog)
    if event_id:
        query = query.filter(AuditLog.event_id == event_id)
    if event_ids is not None:
        query = query.filter(AuditLog.event_id.in_(event_ids))
    if actor_id:
        query = query.filter(AuditLog.actor_id == actor_id)
    if action:
        query = query.filter(AuditLog.action == action)
    if start:
        query = query.filter(AuditLog.created_at >= as_utc(start))
    if end:
        query = query.filter(AuditLog.created_at <= as_utc(end))
    return query.order_by(AuditLog.created_at, AuditLog.audit_id).all()


def list_visible_entries(
    db: Session,
    actor: Actor,
    event_id: Optional[str] = None,
    actor_id: Optional[str] = None,
    action: Optional[AuditAction] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[AuditLog]:
    """Entries the actor may read: everything with bypass rights, else own events only."""
    actor.require(Capability.view_audit)
    scope = None
    if not actor.has(Capability.bypass_ownership):
        scope = [eid for (eid,) in db.query(Event.event_id).filter(Event.manager_id == actor.user_id).all()]
        if event_id and event_id not in scope:
            raise PermissionDeniedError()
    return list_entries(db, event_id=event_id, actor_id=actor_id, action=action, start=start, end=end, event_ids=scope)


def count_by_action(entries: list[AuditLog]) -> dict[str, int]:
    """Counts per action tag; every known tag is present, zero if unused."""
    counts = Counter(entry.action.value for entry in entries)
    return {action.value: counts.get(action.value, 0) for action in AuditAction}
