"""Check-in state machine: PENDING -> CHECKED_IN, exactly once per guest.

The transition is a single conditional UPDATE keyed on the guest still
being pending. Whichever request's UPDATE matches the row wins; every
other concurrent or later attempt matches zero rows and is answered as a
DUPLICATE carrying the winner's timestamp and actor. Nothing here relies
on application-level locking.

DUPLICATE and INVALID are outcomes, not errors. The only exception raised
is PermissionDeniedError, and it is raised before the guest's state is
reported back.
"""
import enum
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.errors import PermissionDeniedError
from app.models.audit_log import AuditAction
from app.models.guest import Guest
from app.models.user import User
from app.services import audit_service
from app.services.access_code_service import normalize_code
from app.services.permission_service import Actor, can_check_in
from app.timeutils import utcnow

logger = logging.getLogger(__name__)

MSG_SUCCESS = "Check-in successful"
MSG_DUPLICATE = "This invitation has already been used"
MSG_NOT_FOUND = "Code is not valid or does not exist"
MSG_WRONG_EVENT = "This code is not for this event"
MSG_BAD_PAYLOAD = "Invalid code"


class CheckInKind(str, enum.Enum):
    success = "SUCCESS"
    duplicate = "DUPLICATE"
    invalid = "INVALID"


@dataclass(frozen=True)
class CheckInResult:
    kind: CheckInKind
    message: str
    guest: Optional[Guest] = None
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[str] = None
    checked_in_by_name: Optional[str] = None


def _invalid(message: str) -> CheckInResult:
    return CheckInResult(kind=CheckInKind.invalid, message=message)


def _user_name(db: Session, user_id: Optional[str]) -> Optional[str]:
    if not user_id:
        return None
    row = db.query(User.name).filter(User.user_id == user_id).first()
    return row[0] if row else None


def _duplicate(db: Session, guest: Guest) -> CheckInResult:
    return CheckInResult(
        kind=CheckInKind.duplicate,
        message=MSG_DUPLICATE,
        guest=guest,
        checked_in_at=guest.checked_in_at,
        checked_in_by=guest.checked_in_by,
        checked_in_by_name=_user_name(db, guest.checked_in_by),
    )


def resolve_guest(db: Session, code_or_guest_id: str) -> Optional[Guest]:
    """Find a guest by id, falling back to its access code (case-insensitive)."""
    if not code_or_guest_id or not code_or_guest_id.strip():
        return None
    guest = db.query(Guest).filter(Guest.guest_id == code_or_guest_id.strip()).first()
    if guest:
        return guest
    return db.query(Guest).filter(Guest.access_code == normalize_code(code_or_guest_id)).first()


def _transition(db: Session, actor: Actor, guest: Guest) -> CheckInResult:
    """Atomic compare-and-set on the pending state."""
    if guest.is_checked_in:
        # Terminal state: no write needed to answer
        logger.info("Duplicate check-in for guest %s by %s", guest.guest_id, actor.user_id)
        return _duplicate(db, guest)

    now = utcnow()
    result = db.execute(
        update(Guest)
        .where(Guest.guest_id == guest.guest_id, Guest.is_checked_in.is_(False))
        .values(is_checked_in=True, checked_in_at=now, checked_in_by=actor.user_id)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 1:
        audit_service.record(
            db,
            actor_id=actor.user_id,
            action=AuditAction.check_in,
            event_id=guest.event_id,
            guest_id=guest.guest_id,
            details=f"Checked in: {guest.name}",
        )
        db.commit()
        db.refresh(guest)
        logger.info("Checked in guest %s at event %s by %s", guest.guest_id, guest.event_id, actor.user_id)
        return CheckInResult(
            kind=CheckInKind.success,
            message=MSG_SUCCESS,
            guest=guest,
            checked_in_at=guest.checked_in_at,
            checked_in_by=guest.checked_in_by,
            checked_in_by_name=_user_name(db, guest.checked_in_by),
        )

    # Lost the race (or the guest vanished): release and report what won
    db.commit()
    current = (
        db.query(Guest)
        .populate_existing()
        .filter(Guest.guest_id == guest.guest_id)
        .first()
    )
    if current is None:
        return _invalid(MSG_NOT_FOUND)
    logger.info("Duplicate check-in for guest %s by %s (lost race)", guest.guest_id, actor.user_id)
    return _duplicate(db, current)


def _check_in_guest(db: Session, actor: Actor, guest: Optional[Guest], event_hint: Optional[str]) -> CheckInResult:
    if guest is None:
        return _invalid(MSG_NOT_FOUND)
    allowed = can_check_in(db, actor, guest.event)
    if event_hint and guest.event_id != event_hint:
        # Outsiders cannot tell a foreign code from an unknown one
        return _invalid(MSG_WRONG_EVENT if allowed else MSG_NOT_FOUND)
    if not allowed:
        logger.warning("Actor %s may not check in guests of event %s", actor.user_id, guest.event_id)
        raise PermissionDeniedError()
    return _transition(db, actor, guest)


def check_in(db: Session, actor: Actor, code_or_guest_id: str, event_hint: Optional[str] = None) -> CheckInResult:
    """Check in by guest id or access code, optionally scoped to one event."""
    return _check_in_guest(db, actor, resolve_guest(db, code_or_guest_id), event_hint)


def check_in_by_code(db: Session, actor: Actor, code: str, event_hint: Optional[str] = None) -> CheckInResult:
    """Check in by access code only (typed at the door)."""
    if not code or not code.strip():
        return _invalid(MSG_NOT_FOUND)
    guest = db.query(Guest).filter(Guest.access_code == normalize_code(code)).first()
    return _check_in_guest(db, actor, guest, event_hint)


def check_in_by_qr(db: Session, actor: Actor, qr_data: str, event_hint: Optional[str] = None) -> CheckInResult:
    """Check in from a scanned QR payload ``{"id": guest_id, "code": access_code}``.

    Both parts must match the same stored guest.
    """
    try:
        payload = json.loads(qr_data)
        guest_id, code = str(payload["id"]), str(payload["code"])
    except (TypeError, ValueError, KeyError):
        return _invalid(MSG_BAD_PAYLOAD)

    guest = db.query(Guest).filter(Guest.guest_id == guest_id).first()
    if guest is None or guest.access_code != normalize_code(code):
        return _invalid(MSG_NOT_FOUND)
    return _check_in_guest(db, actor, guest, event_hint)
