"""Guest service — guest-list ingestion gated by the capacity enforcer.

Single adds are rejected when the event is full; bulk imports are
truncated to the remaining capacity and report how many rows were
dropped, never failing the whole batch.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.errors import NotFoundError, ValidationFailedError
from app.models.audit_log import AuditAction
from app.models.guest import Guest, GuestCategory
from app.services import audit_service, capacity_service, event_service
from app.services.access_code_service import issue_access_code
from app.services.permission_service import Actor, require_event_manager

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("name", "phone", "category", "companions", "notes")

# Spreadsheet column headers seen in uploaded guest lists, per field
IMPORT_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name", "Name", "الاسم"),
    "phone": ("phone", "Phone", "الجوال"),
    "category": ("category", "Category", "الفئة"),
    "companions": ("companions", "Companions", "عدد المرافقين"),
    "notes": ("notes", "Notes", "ملاحظات"),
}


@dataclass
class ImportResult:
    created: list[Guest] = field(default_factory=list)
    truncated_count: int = 0
    skipped_count: int = 0


def _pick(record: dict[str, Any], field_name: str) -> Any:
    for key in IMPORT_ALIASES[field_name]:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def _parse_category(value: Any) -> GuestCategory:
    if isinstance(value, GuestCategory):
        return value
    try:
        return GuestCategory(str(value).strip().lower())
    except ValueError:
        return GuestCategory.regular


def _parse_companions(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_import_record(record: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Map a loosely-keyed row to guest fields; None when the row has no name."""
    name = _text(_pick(record, "name"))
    if not name:
        return None
    category = _pick(record, "category")
    return {
        "name": name,
        "phone": _text(_pick(record, "phone")),
        "category": _parse_category(category) if category is not None else GuestCategory.regular,
        "companions": _parse_companions(_pick(record, "companions")),
        "notes": _text(_pick(record, "notes")),
    }


def _validate_fields(fields: dict[str, Any]) -> None:
    if "name" in fields and (fields["name"] is None or not str(fields["name"]).strip()):
        raise ValidationFailedError("Guest name is required", field="name")
    if "companions" in fields and (fields["companions"] is None or fields["companions"] < 0):
        raise ValidationFailedError("Companions must be zero or more", field="companions")
    if "category" in fields:
        try:
            GuestCategory(fields["category"])
        except ValueError:
            raise ValidationFailedError(f"Unknown guest category: {fields['category']}", field="category")


def get_guest(db: Session, guest_id: str) -> Guest:
    guest = db.query(Guest).filter(Guest.guest_id == guest_id).first()
    if not guest:
        raise NotFoundError("Guest", guest_id)
    return guest


def get_managed_guest(db: Session, actor: Actor, guest_id: str) -> Guest:
    guest = get_guest(db, guest_id)
    require_event_manager(actor, guest.event)
    return guest


def list_guests(db: Session, actor: Actor, event_id: str) -> list[Guest]:
    """Guest list for managers and assigned organizers (offline door lists)."""
    event = event_service.get_event_for_actor(db, actor, event_id)
    return (
        db.query(Guest)
        .filter(Guest.event_id == event.event_id)
        .order_by(Guest.created_at, Guest.name)
        .all()
    )


def add_guest(
    db: Session,
    actor: Actor,
    event_id: str,
    name: str,
    phone: Optional[str] = None,
    category: GuestCategory = GuestCategory.regular,
    companions: int = 0,
    notes: Optional[str] = None,
) -> Guest:
    """Add one guest; raises EVENT_FULL when the tier limit is reached."""
    event = event_service.get_managed_event(db, actor, event_id)
    _validate_fields({"name": name, "companions": companions, "category": category})

    capacity_service.lock_event(db, event.event_id)
    capacity_service.require_room_for_one(db, event)

    guest = Guest(
        event_id=event.event_id,
        name=name.strip(),
        phone=phone,
        category=GuestCategory(category),
        companions=companions,
        notes=notes,
        access_code=issue_access_code(db),
    )
    db.add(guest)
    db.flush()
    audit_service.record(
        db,
        actor_id=actor.user_id,
        action=AuditAction.add_guest,
        event_id=event.event_id,
        guest_id=guest.guest_id,
        details=f"Added guest: {guest.name}",
    )
    db.commit()
    db.refresh(guest)
    logger.info("Added guest %s to event %s", guest.guest_id, event_id)
    return guest


def import_guests(db: Session, actor: Actor, event_id: str, records: list[dict[str, Any]]) -> ImportResult:
    """Bulk import, truncated to the event's remaining capacity."""
    event = event_service.get_managed_event(db, actor, event_id)

    rows = []
    result = ImportResult()
    for record in records:
        row = normalize_import_record(record)
        if row is None:
            result.skipped_count += 1
        else:
            rows.append(row)

    capacity_service.lock_event(db, event.event_id)
    decision = capacity_service.evaluate(db, event, len(rows))
    if decision.truncated:
        logger.warning(
            "Import into event %s truncated: %d of %d rows fit (limit %s, current %d)",
            event_id, decision.allowed_count, len(rows), decision.limit, decision.current,
        )

    reserved: set[str] = set()
    for row in rows[:decision.allowed_count]:
        guest = Guest(event_id=event.event_id, access_code=issue_access_code(db, reserved), **row)
        db.add(guest)
        result.created.append(guest)
    result.truncated_count = len(rows) - len(result.created)

    audit_service.record(
        db,
        actor_id=actor.user_id,
        action=AuditAction.upload_guests,
        event_id=event.event_id,
        details=f"Imported {len(result.created)} guest(s); {result.truncated_count} dropped over capacity, {result.skipped_count} without a name",
    )
    db.commit()
    for guest in result.created:
        db.refresh(guest)
    logger.info(
        "Imported %d guest(s) into event %s (%d truncated, %d skipped)",
        len(result.created), event_id, result.truncated_count, result.skipped_count,
    )
    return result


def update_guest(db: Session, actor: Actor, guest_id: str, updates: dict[str, Any]) -> Guest:
    """Edit guest details. Access code and check-in state are not editable here."""
    guest = get_managed_guest(db, actor, guest_id)
    updates = {k: v for k, v in updates.items() if k in _EDITABLE_FIELDS}
    _validate_fields(updates)

    for field_name, value in updates.items():
        if field_name == "name":
            value = value.strip()
        elif field_name == "category":
            value = GuestCategory(value)
        setattr(guest, field_name, value)

    audit_service.record(
        db,
        actor_id=actor.user_id,
        action=AuditAction.update_guest,
        event_id=guest.event_id,
        guest_id=guest.guest_id,
        details=f"Updated guest: {guest.name}",
    )
    db.commit()
    db.refresh(guest)
    logger.info("Updated guest %s", guest_id)
    return guest


def delete_guest(db: Session, actor: Actor, guest_id: str) -> None:
    """Delete a guest. Audit entries keep the guest id."""
    guest = get_managed_guest(db, actor, guest_id)
    event_id, name = guest.event_id, guest.name
    db.delete(guest)
    audit_service.record(
        db,
        actor_id=actor.user_id,
        action=AuditAction.delete_guest,
        event_id=event_id,
        guest_id=guest_id,
        details=f"Deleted guest: {name}",
    )
    db.commit()
    logger.info("Deleted guest %s from event %s", guest_id, event_id)
