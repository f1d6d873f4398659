"""Guest capacity enforcer — caps guest count per event by its tier."""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.errors import ErrorCode, NotFoundError, QuotaError
from app.models.event import Event
from app.models.guest import Guest
from app.services import tier_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityDecision:
    """How many of ``incoming`` guests fit; ``limit`` is None when unlimited."""

    incoming: int
    allowed_count: int
    truncated: bool
    limit: Optional[int] = None
    current: int = 0
    reason: Optional[str] = None

    @property
    def dropped(self) -> int:
        return self.incoming - self.allowed_count


def current_guest_count(db: Session, event_id: str) -> int:
    return db.query(func.count(Guest.guest_id)).filter(Guest.event_id == event_id).scalar()


def lock_event(db: Session, event_id: str) -> Optional[Event]:
    """Row-lock the event so concurrent guest inserts against it serialize."""
    return db.query(Event).filter(Event.event_id == event_id).with_for_update().first()


def guest_limit(db: Session, event: Event) -> Optional[int]:
    """Maximum guests for the event, or None when there is no limit.

    No tier, an unlimited tier, or a tier id that no longer resolves all
    mean no limit.
    """
    tier = tier_service.find_tier(db, event.tier_id)
    if not tier or tier.is_unlimited or not tier.max_guests:
        return None
    return tier.max_guests


def evaluate(db: Session, event: Event, incoming_count: int) -> CapacityDecision:
    limit = guest_limit(db, event)
    if limit is None:
        return CapacityDecision(incoming=incoming_count, allowed_count=incoming_count, truncated=False)

    current = current_guest_count(db, event.event_id)
    remaining = limit - current
    if remaining <= 0:
        return CapacityDecision(
            incoming=incoming_count,
            allowed_count=0,
            truncated=incoming_count > 0,
            limit=limit,
            current=current,
            reason=f"Event has reached its guest limit ({limit})",
        )

    allowed = min(incoming_count, remaining)
    truncated = incoming_count > allowed
    return CapacityDecision(
        incoming=incoming_count,
        allowed_count=allowed,
        truncated=truncated,
        limit=limit,
        current=current,
        reason=f"Only {allowed} of {incoming_count} guests fit the event limit ({limit})" if truncated else None,
    )


def check_capacity(db: Session, event_id: str, incoming_count: int) -> CapacityDecision:
    """How many of ``incoming_count`` new guests the event can still take."""
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFoundError("Event", event_id)
    return evaluate(db, event, incoming_count)


def require_room_for_one(db: Session, event: Event) -> None:
    """Single-guest adds are rejected outright when the event is full."""
    decision = evaluate(db, event, 1)
    if decision.allowed_count < 1:
        logger.warning("Event %s is full (%d/%d)", event.event_id, decision.current, decision.limit)
        raise QuotaError(
            ErrorCode.EVENT_FULL,
            f"Event has reached its guest limit ({decision.limit}). Upgrade the capacity tier to add more.",
        )
