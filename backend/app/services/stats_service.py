"""Dashboard counters for the acting user's own role.

The events counted are exactly the ones the actor can list: everything
with bypass rights, own events for a manager, assigned active events for
an organizer. "Today" starts at local midnight in REPORT_TIMEZONE.
"""
import logging
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.guest import Guest
from app.models.user import User, UserRole
from app.schemas.stats import AdminStats, EventManagerStats, OrganizerStats, SuperAdminStats
from app.services import event_service
from app.services.permission_service import Actor
from app.timeutils import start_of_local_day

logger = logging.getLogger(__name__)


def _role_count(db: Session, role: UserRole) -> int:
    return db.query(func.count(User.user_id)).filter(User.role == role).scalar()


def _guest_counts(db: Session, event_ids: list[str], since: datetime) -> tuple[int, int]:
    """(guests, guests checked in since ``since``) across the given events."""
    if not event_ids:
        return 0, 0
    base = db.query(func.count(Guest.guest_id)).filter(Guest.event_id.in_(event_ids))
    total = base.scalar()
    today = base.filter(Guest.is_checked_in.is_(True), Guest.checked_in_at >= since).scalar()
    return total, today


def dashboard_stats(
    db: Session,
    actor: Actor,
    now: Optional[datetime] = None,
) -> Union[SuperAdminStats, AdminStats, EventManagerStats, OrganizerStats]:
    events = event_service.list_events_for_actor(db, actor)
    event_ids = [e.event_id for e in events]
    active = sum(1 for e in events if e.is_active)
    total_guests, checked_in_today = _guest_counts(db, event_ids, start_of_local_day(now))
    logger.debug("Stats for %s (%s): %d events", actor.user_id, actor.role.value, len(events))

    if actor.role == UserRole.super_admin:
        return SuperAdminStats(
            total_admins=_role_count(db, UserRole.admin),
            total_event_managers=_role_count(db, UserRole.event_manager),
            total_events=len(events),
            active_events=active,
        )
    if actor.role == UserRole.admin:
        return AdminStats(
            total_event_managers=_role_count(db, UserRole.event_manager),
            total_events=len(events),
            active_events=active,
            total_guests=total_guests,
        )
    if actor.role == UserRole.event_manager:
        return EventManagerStats(
            total_events=len(events),
            active_events=active,
            total_guests=total_guests,
            checked_in_today=checked_in_today,
        )
    return OrganizerStats(
        assigned_events=len(events),
        total_guests=total_guests,
        checked_in_today=checked_in_today,
    )
