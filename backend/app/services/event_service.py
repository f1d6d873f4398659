"""Core event service — event lifecycle gated by the quota ledger.

Responsibilities:
- Authorization: capability + ownership for every mutation
- Quota gate on creation, evaluated under a row lock on the quota row
- Tier assignment fixed once the event exists
- Organizer assignment for door staff
- Audit entry for every write, committed in the same unit of work
"""
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.errors import ErrorCode, NotFoundError, PermissionDeniedError, QuotaError, ValidationFailedError
from app.models.audit_log import AuditAction
from app.models.event import Event, EventOrganizer
from app.models.user import User, UserRole
from app.services import audit_service, quota_service, tier_service
from app.services.permission_service import (
    Actor,
    Capability,
    can_manage_event,
    is_assigned_organizer,
    require_event_manager,
)
from app.timeutils import as_utc

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("name", "description", "location", "date", "is_active")


def get_event(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFoundError("Event", event_id)
    return event


def get_event_for_actor(db: Session, actor: Actor, event_id: str) -> Event:
    """Fetch an event the actor may see: manages it or is assigned to it."""
    event = get_event(db, event_id)
    if can_manage_event(actor, event):
        return event
    if actor.role == UserRole.organizer and is_assigned_organizer(db, actor.user_id, event.event_id):
        return event
    raise PermissionDeniedError()


def get_managed_event(db: Session, actor: Actor, event_id: str) -> Event:
    """Fetch an event the actor may modify."""
    event = get_event(db, event_id)
    require_event_manager(actor, event)
    return event


def list_events_for_actor(db: Session, actor: Actor) -> list[Event]:
    """Bypass → all events; manager → own events; organizer → assigned active events."""
    query = db.query(Event)
    if actor.has(Capability.bypass_ownership):
        pass
    elif actor.has(Capability.manage_events):
        query = query.filter(Event.manager_id == actor.user_id)
    else:
        query = query.join(EventOrganizer).filter(
            EventOrganizer.organizer_id == actor.user_id,
            Event.is_active.is_(True),
        )
    return query.order_by(Event.date.desc()).all()


def create_event(
    db: Session,
    actor: Actor,
    name: str,
    date: datetime,
    tier_id: Optional[str] = None,
    description: Optional[str] = None,
    location: Optional[str] = None,
) -> Event:
    """Create an event after the quota gate; the check and insert share one transaction."""
    actor.require(Capability.manage_events)

    if not name or not name.strip():
        raise ValidationFailedError("Event name is required", field="name")
    if date is None:
        raise ValidationFailedError("Event date is required", field="date")

    quota_bound = not actor.has(Capability.bypass_quota)
    if quota_bound and not tier_id:
        raise ValidationFailedError("A capacity tier must be selected", field="tier_id", code=ErrorCode.NO_TIER_SELECTED)

    if tier_id:
        if quota_bound:
            # Serializes concurrent creations for the same (manager, tier)
            quota_service.lock_quota_row(db, actor.user_id, tier_id)
            decision = quota_service.check_quota(db, actor.user_id, tier_id)
            if not decision.allowed:
                db.rollback()
                logger.warning("Event creation by %s on tier %s refused: %s", actor.user_id, tier_id, decision.code.value)
                decision.raise_if_denied()
        else:
            tier = tier_service.find_tier(db, tier_id)
            if not tier or not tier.is_active:
                raise QuotaError(ErrorCode.TIER_INVALID, "Capacity tier is invalid or inactive")

    event = Event(
        manager_id=actor.user_id,
        tier_id=tier_id,
        name=name.strip(),
        description=description,
        location=location,
        date=as_utc(date),
        is_active=True,
    )
    db.add(event)
    db.flush()

    audit_service.record(
        db,
        actor_id=actor.user_id,
        action=AuditAction.create_event,
        event_id=event.event_id,
        details=f"Created event: {event.name}",
    )
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s) by manager %s on tier %s", event.name, event.event_id, actor.user_id, tier_id)
    return event


def update_event(db: Session, actor: Actor, event_id: str, updates: dict[str, Any]) -> Event:
    """Partial update. The tier is fixed for quota accounting and cannot change."""
    event = get_managed_event(db, actor, event_id)

    if "tier_id" in updates and updates["tier_id"] != event.tier_id:
        raise ValidationFailedError("The capacity tier of an existing event cannot be changed", field="tier_id")
    if "name" in updates and (not updates["name"] or not updates["name"].strip()):
        raise ValidationFailedError("Event name is required", field="name")
    if "date" in updates and updates["date"] is None:
        raise ValidationFailedError("Event date is required", field="date")
    if "is_active" in updates and updates["is_active"] is None:
        raise ValidationFailedError("Active flag must be true or false", field="is_active")
    if updates.get("date") is not None:
        updates = {**updates, "date": as_utc(updates["date"])}

    changed = []
    for field, value in updates.items():
        if field in _EDITABLE_FIELDS:
            setattr(event, field, value.strip() if field == "name" else value)
            changed.append(field)

    audit_service.record(
        db,
        actor_id=actor.user_id,
        action=AuditAction.update_event,
        event_id=event.event_id,
        details=f"Updated event {event.name}: {', '.join(changed) or 'no changes'}",
    )
    db.commit()
    db.refresh(event)
    logger.info("Updated event %s (%s)", event_id, ", ".join(changed))
    return event


def delete_event(db: Session, actor: Actor, event_id: str) -> None:
    """Delete an event with its guests and assignments.

    Quota usage is a live count, so this frees the event's tier slot.
    Audit entries referencing the event are kept.
    """
    event = get_managed_event(db, actor, event_id)
    name = event.name
    db.delete(event)
    audit_service.record(
        db,
        actor_id=actor.user_id,
        action=AuditAction.delete_event,
        event_id=event_id,
        details=f"Deleted event: {name}",
    )
    db.commit()
    logger.info("Deleted event %s by %s", event_id, actor.user_id)


def list_organizers(db: Session, actor: Actor, event_id: str) -> list[User]:
    event = get_event_for_actor(db, actor, event_id)
    return (
        db.query(User)
        .join(EventOrganizer, EventOrganizer.organizer_id == User.user_id)
        .filter(EventOrganizer.event_id == event.event_id)
        .order_by(EventOrganizer.assigned_at)
        .all()
    )


def assign_organizer(db: Session, actor: Actor, event_id: str, organizer_id: str) -> EventOrganizer:
    """Assign door staff to an event. Re-assigning is a no-op."""
    event = get_managed_event(db, actor, event_id)

    organizer = db.query(User).filter(User.user_id == organizer_id).first()
    if not organizer or organizer.role != UserRole.organizer:
        raise NotFoundError("Organizer", organizer_id)
    # Managers may only assign organizers they created
    if not actor.has(Capability.bypass_ownership) and organizer.created_by_id != actor.user_id:
        raise PermissionDeniedError("You can only assign organizers you created")

    existing = (
        db.query(EventOrganizer)
        .filter(EventOrganizer.event_id == event_id, EventOrganizer.organizer_id == organizer_id)
        .first()
    )
    if existing:
        return existing

    assignment = EventOrganizer(event_id=event.event_id, organizer_id=organizer_id)
    db.add(assignment)
    audit_service.record(
        db,
        actor_id=actor.user_id,
        action=AuditAction.assign_organizer,
        event_id=event.event_id,
        details=f"Assigned organizer {organizer.name}",
    )
    db.commit()
    db.refresh(assignment)
    logger.info("Assigned organizer %s to event %s", organizer_id, event_id)
    return assignment


def remove_organizer(db: Session, actor: Actor, event_id: str, organizer_id: str) -> None:
    event = get_managed_event(db, actor, event_id)
    assignment = (
        db.query(EventOrganizer)
        .filter(EventOrganizer.event_id == event.event_id, EventOrganizer.organizer_id == organizer_id)
        .first()
    )
    if not assignment:
        raise NotFoundError("Organizer assignment")
    db.delete(assignment)
    audit_service.record(
        db,
        actor_id=actor.user_id,
        action=AuditAction.remove_organizer,
        event_id=event.event_id,
        details=f"Removed organizer {organizer_id}",
    )
    db.commit()
    logger.info("Removed organizer %s from event %s", organizer_id, event_id)
