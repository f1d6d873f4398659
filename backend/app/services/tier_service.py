"""Capacity tier registry — admin-managed catalog of guest-capacity bands."""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.errors import NotFoundError, ValidationFailedError
from app.models.capacity_tier import CapacityTier
from app.models.event import Event
from app.models.tier_quota import UserTierQuota
from app.services.permission_service import Actor, Capability

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("name", "min_guests", "max_guests", "is_unlimited", "is_active", "sort_order")
_REQUIRED_FLAGS = ("is_unlimited", "is_active", "sort_order")


def _validate_bounds(name: Optional[str], min_guests: Optional[int], max_guests: Optional[int], is_unlimited: bool) -> None:
    if name is None or not name.strip():
        raise ValidationFailedError("Tier name is required", field="name")
    if min_guests is None or min_guests < 0:
        raise ValidationFailedError("Minimum guests must be zero or more", field="min_guests")
    if is_unlimited:
        return
    if max_guests is None or max_guests <= 0:
        raise ValidationFailedError("Maximum guests is required for a limited tier", field="max_guests")
    if max_guests < min_guests:
        raise ValidationFailedError("Maximum guests must be at least the minimum", field="max_guests")


def find_tier(db: Session, tier_id: Optional[str]) -> Optional[CapacityTier]:
    """Return the tier or None; an unknown id is not an error here."""
    if not tier_id:
        return None
    return db.query(CapacityTier).filter(CapacityTier.tier_id == tier_id).first()


def get_tier(db: Session, tier_id: str) -> CapacityTier:
    tier = find_tier(db, tier_id)
    if not tier:
        raise NotFoundError("Capacity tier", tier_id)
    return tier


def list_tiers(db: Session, active_only: bool = False) -> list[CapacityTier]:
    """Tiers in display order."""
    query = db.query(CapacityTier)
    if active_only:
        query = query.filter(CapacityTier.is_active.is_(True))
    return query.order_by(CapacityTier.sort_order, CapacityTier.created_at, CapacityTier.name).all()


def create_tier(
    db: Session,
    actor: Actor,
    name: str,
    min_guests: int = 0,
    max_guests: Optional[int] = None,
    is_unlimited: bool = False,
    is_active: bool = True,
    sort_order: int = 0,
) -> CapacityTier:
    actor.require(Capability.manage_tiers)
    _validate_bounds(name, min_guests, max_guests, is_unlimited)

    tier = CapacityTier(
        name=name.strip(),
        min_guests=min_guests,
        max_guests=None if is_unlimited else max_guests,
        is_unlimited=is_unlimited,
        is_active=is_active,
        sort_order=sort_order,
    )
    db.add(tier)
    db.commit()
    db.refresh(tier)
    logger.info("Created capacity tier '%s' (%s)", tier.name, tier.tier_id)
    return tier


def update_tier(db: Session, actor: Actor, tier_id: str, updates: dict[str, Any]) -> CapacityTier:
    """Partial update; the merged result must still have consistent bounds."""
    actor.require(Capability.manage_tiers)
    tier = get_tier(db, tier_id)

    for field in _REQUIRED_FLAGS:
        if field in updates and updates[field] is None:
            raise ValidationFailedError(f"{field} cannot be null", field=field)

    merged = {field: getattr(tier, field) for field in _EDITABLE_FIELDS}
    merged.update({k: v for k, v in updates.items() if k in _EDITABLE_FIELDS})
    _validate_bounds(merged["name"], merged["min_guests"], merged["max_guests"], merged["is_unlimited"])

    for field in _EDITABLE_FIELDS:
        setattr(tier, field, merged[field])
    tier.name = tier.name.strip()
    if tier.is_unlimited:
        tier.max_guests = None
    db.commit()
    db.refresh(tier)
    logger.info("Updated capacity tier %s", tier_id)
    return tier


def deactivate_tier(db: Session, actor: Actor, tier_id: str) -> CapacityTier:
    """Soft-disable: existing events keep working, new events cannot pick it."""
    actor.require(Capability.manage_tiers)
    tier = get_tier(db, tier_id)
    tier.is_active = False
    db.commit()
    db.refresh(tier)
    logger.info("Deactivated capacity tier %s", tier_id)
    return tier


def delete_tier(db: Session, actor: Actor, tier_id: str) -> int:
    """Hard-delete a tier and its quota rows.

    Events pointing at it keep the dangling id and are treated as having no
    tier from now on. Returns the number of orphaned events.
    """
    actor.require(Capability.manage_tiers)
    tier = get_tier(db, tier_id)

    orphaned_events = db.query(Event).filter(Event.tier_id == tier_id).count()
    quota_rows = (
        db.query(UserTierQuota)
        .filter(UserTierQuota.tier_id == tier_id)
        .delete(synchronize_session=False)
    )
    if orphaned_events or quota_rows:
        logger.warning(
            "Deleting capacity tier %s orphans %d event(s) and drops %d quota row(s)",
            tier_id, orphaned_events, quota_rows,
        )
    db.delete(tier)
    db.commit()
    logger.info("Deleted capacity tier %s", tier_id)
    return orphaned_events
