"""Reporting — read-only projections over events, guests and the audit trail.

Every report is a fixed pydantic record (see app.schemas.report). Rates are
integer percentages rounded half up; an empty population has a rate of 0.
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.errors import NotFoundError, PermissionDeniedError
from app.models.event import Event, EventOrganizer
from app.models.guest import Guest
from app.models.user import User, UserRole
from app.schemas.report import (
    AdminReport,
    AdminSummary,
    AuditReport,
    AuditRow,
    AuditSummary,
    CategoryBreakdown,
    EventManagerReport,
    EventManagerSummary,
    EventRow,
    EventsReport,
    EventsSummary,
    GuestRow,
    GuestsReport,
    GuestsSummary,
    ManagerRow,
    OrganizerRow,
    UserBrief,
)
from app.services import audit_service
from app.services.permission_service import Actor, Capability, can_manage_event
from app.timeutils import as_utc, start_of_local_day

logger = logging.getLogger(__name__)


def check_in_rate(checked_in: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(checked_in * 100 / total + 0.5)


def _breakdown(guests: Iterable[Guest]) -> CategoryBreakdown:
    counts = Counter(guest.category.value for guest in guests)
    return CategoryBreakdown(**counts)


def _brief(user: User) -> UserBrief:
    return UserBrief(
        user_id=user.user_id,
        name=user.name,
        username=user.username,
        is_active=user.is_active,
        created_at=user.created_at,
    )


def _events_query(db: Session, start: Optional[datetime], end: Optional[datetime]):
    query = db.query(Event)
    if start:
        query = query.filter(Event.date >= as_utc(start))
    if end:
        query = query.filter(Event.date <= as_utc(end))
    return query


def _guests_by_event(db: Session, event_ids: list[str]) -> dict[str, list[Guest]]:
    grouped: dict[str, list[Guest]] = {event_id: [] for event_id in event_ids}
    if event_ids:
        for guest in db.query(Guest).filter(Guest.event_id.in_(event_ids)).all():
            grouped[guest.event_id].append(guest)
    return grouped


def _organizer_counts(db: Session, event_ids: list[str]) -> Counter:
    if not event_ids:
        return Counter()
    rows = db.query(EventOrganizer.event_id).filter(EventOrganizer.event_id.in_(event_ids)).all()
    return Counter(event_id for (event_id,) in rows)


def _event_row(event: Event, guests: list[Guest], organizers_count: int, manager_name: Optional[str]) -> EventRow:
    checked_in = sum(1 for g in guests if g.is_checked_in)
    return EventRow(
        event_id=event.event_id,
        name=event.name,
        date=event.date,
        location=event.location,
        is_active=event.is_active,
        manager_id=event.manager_id,
        manager_name=manager_name,
        total_guests=len(guests),
        checked_in=checked_in,
        pending=len(guests) - checked_in,
        check_in_rate=check_in_rate(checked_in, len(guests)),
        organizers_count=organizers_count,
        category_breakdown=_breakdown(guests),
    )


def _event_rows(db: Session, events: list[Event]) -> tuple[list[EventRow], dict[str, list[Guest]]]:
    event_ids = [e.event_id for e in events]
    guests = _guests_by_event(db, event_ids)
    organizer_counts = _organizer_counts(db, event_ids)
    manager_ids = sorted({e.manager_id for e in events})
    names = dict(db.query(User.user_id, User.name).filter(User.user_id.in_(manager_ids)).all()) if manager_ids else {}
    rows = [
        _event_row(e, guests[e.event_id], organizer_counts[e.event_id], names.get(e.manager_id))
        for e in events
    ]
    return rows, guests


def _require_reports(actor: Actor) -> None:
    actor.require(Capability.view_reports)


def admin_report(
    db: Session,
    actor: Actor,
    admin_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> AdminReport:
    """What one admin built: the managers and organizers they created, and those managers' events."""
    _require_reports(actor)
    admin = db.query(User).filter(User.user_id == admin_id).first()
    if not admin or admin.role != UserRole.admin:
        raise NotFoundError("Admin", admin_id)

    created = db.query(User).filter(User.created_by_id == admin_id).order_by(User.created_at, User.name).all()
    managers = [u for u in created if u.role == UserRole.event_manager]
    organizers = [u for u in created if u.role == UserRole.organizer]

    manager_ids = [m.user_id for m in managers]
    events = (
        _events_query(db, start, end).filter(Event.manager_id.in_(manager_ids)).order_by(Event.date).all()
        if manager_ids else []
    )
    rows, _ = _event_rows(db, events)

    manager_rows = []
    for manager in managers:
        owned = [r for r in rows if r.manager_id == manager.user_id]
        manager_rows.append(ManagerRow(
            user_id=manager.user_id,
            name=manager.name,
            username=manager.username,
            is_active=manager.is_active,
            events_count=len(owned),
            total_guests=sum(r.total_guests for r in owned),
            checked_in=sum(r.checked_in for r in owned),
        ))

    total = sum(r.total_guests for r in rows)
    checked_in = sum(r.checked_in for r in rows)
    logger.info("Built admin report for %s (%d events)", admin_id, len(rows))
    return AdminReport(
        admin=_brief(admin),
        summary=AdminSummary(
            event_managers_count=len(managers),
            organizers_count=len(organizers),
            events_count=len(rows),
            total_guests=total,
            checked_in_guests=checked_in,
            check_in_rate=check_in_rate(checked_in, total),
        ),
        event_managers=manager_rows,
        events=rows,
    )


def event_manager_report(
    db: Session,
    actor: Actor,
    manager_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> EventManagerReport:
    _require_reports(actor)
    manager = db.query(User).filter(User.user_id == manager_id).first()
    if not manager or manager.role != UserRole.event_manager:
        raise NotFoundError("Event manager", manager_id)

    events = _events_query(db, start, end).filter(Event.manager_id == manager_id).order_by(Event.date).all()
    rows, guests = _event_rows(db, events)
    all_guests = [g for event_guests in guests.values() for g in event_guests]

    event_ids = [e.event_id for e in events]
    assignments = (
        db.query(EventOrganizer).filter(EventOrganizer.event_id.in_(event_ids)).all()
        if event_ids else []
    )
    created_organizers = (
        db.query(User)
        .filter(User.created_by_id == manager_id, User.role == UserRole.organizer)
        .order_by(User.created_at, User.name)
        .all()
    )
    assigned_per_organizer = Counter(a.organizer_id for a in assignments)

    today = start_of_local_day(now)
    checked_in_today = sum(
        1 for g in all_guests if g.is_checked_in and g.checked_in_at and as_utc(g.checked_in_at) >= today
    )
    checked_in = sum(1 for g in all_guests if g.is_checked_in)
    return EventManagerReport(
        manager=_brief(manager),
        summary=EventManagerSummary(
            events_count=len(events),
            active_events_count=sum(1 for e in events if e.is_active),
            total_guests=len(all_guests),
            checked_in_guests=checked_in,
            check_in_rate=check_in_rate(checked_in, len(all_guests)),
            checked_in_today=checked_in_today,
            created_organizers_count=len(created_organizers),
            assigned_organizers_count=len(assigned_per_organizer),
        ),
        events=rows,
        organizers=[
            OrganizerRow(
                user_id=o.user_id,
                name=o.name,
                username=o.username,
                is_active=o.is_active,
                assigned_events_count=assigned_per_organizer.get(o.user_id, 0),
            )
            for o in created_organizers
        ],
    )


def events_report(
    db: Session,
    actor: Actor,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    event_id: Optional[str] = None,
) -> EventsReport:
    _require_reports(actor)
    query = _events_query(db, start, end)
    if event_id:
        query = query.filter(Event.event_id == event_id)
    events = query.order_by(Event.date).all()
    rows, _ = _event_rows(db, events)

    total = sum(r.total_guests for r in rows)
    checked_in = sum(r.checked_in for r in rows)
    return EventsReport(
        summary=EventsSummary(
            events_count=len(rows),
            active_events_count=sum(1 for r in rows if r.is_active),
            total_guests=total,
            checked_in_guests=checked_in,
            check_in_rate=check_in_rate(checked_in, total),
        ),
        events=rows,
    )


def guests_report(
    db: Session,
    actor: Actor,
    event_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    checked_in_only: bool = False,
) -> GuestsReport:
    """Guest list of one event. The date range applies to check-in time, with ``checked_in_only``."""
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFoundError("Event", event_id)
    if not actor.has(Capability.view_reports) and not can_manage_event(actor, event):
        raise PermissionDeniedError()

    guests = db.query(Guest).filter(Guest.event_id == event_id).order_by(Guest.created_at, Guest.name).all()
    if checked_in_only:
        guests = [g for g in guests if g.is_checked_in]
        if start:
            guests = [g for g in guests if g.checked_in_at and as_utc(g.checked_in_at) >= as_utc(start)]
        if end:
            guests = [g for g in guests if g.checked_in_at and as_utc(g.checked_in_at) <= as_utc(end)]

    organizers = (
        db.query(User)
        .join(EventOrganizer, EventOrganizer.organizer_id == User.user_id)
        .filter(EventOrganizer.event_id == event_id)
        .order_by(EventOrganizer.assigned_at)
        .all()
    )
    manager_name = db.query(User.name).filter(User.user_id == event.manager_id).scalar()
    checked_in = sum(1 for g in guests if g.is_checked_in)
    return GuestsReport(
        event=_event_row(event, guests, len(organizers), manager_name),
        summary=GuestsSummary(
            total_guests=len(guests),
            checked_in=checked_in,
            pending=len(guests) - checked_in,
            total_companions=sum(g.companions or 0 for g in guests),
            check_in_rate=check_in_rate(checked_in, len(guests)),
            category_breakdown=_breakdown(guests),
        ),
        guests=[GuestRow.model_validate(g) for g in guests],
        organizers=[_brief(o) for o in organizers],
    )


def audit_report(
    db: Session,
    actor: Actor,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    actor_id: Optional[str] = None,
    event_id: Optional[str] = None,
) -> AuditReport:
    """Audit entries newest first, with per-action counts."""
    _require_reports(actor)
    entries = audit_service.list_entries(db, event_id=event_id, actor_id=actor_id, start=start, end=end)
    entries.reverse()

    user_names = dict(db.query(User.user_id, User.name).all())
    event_names = dict(db.query(Event.event_id, Event.name).all())
    return AuditReport(
        summary=AuditSummary(
            total_actions=len(entries),
            action_counts=audit_service.count_by_action(entries),
        ),
        entries=[
            AuditRow(
                audit_id=e.audit_id,
                action=e.action,
                details=e.details,
                created_at=e.created_at,
                actor_id=e.actor_id,
                actor_name=user_names.get(e.actor_id),
                event_id=e.event_id,
                event_name=event_names.get(e.event_id) if e.event_id else None,
            )
            for e in entries
        ],
    )

