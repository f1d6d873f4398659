"""Quota ledger — how many events of each tier a manager may create.

Usage is never stored: ``used`` is always a live count of the manager's
events on the tier, so deleting an event frees its slot and there is no
counter to drift. Quota rows are only ever replaced (upsert), never
incremented.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import ErrorCode, NotFoundError, QuotaError, ValidationFailedError
from app.models.audit_log import AuditAction
from app.models.capacity_tier import CapacityTier
from app.models.event import Event
from app.models.guest import Guest
from app.models.tier_quota import UserTierQuota
from app.models.user import User, UserRole
from app.services import audit_service, tier_service
from app.services.permission_service import Actor, Capability

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaDecision:
    """Outcome of a quota check; ``code`` and ``reason`` are set when not allowed."""

    allowed: bool
    code: Optional[ErrorCode] = None
    reason: Optional[str] = None
    quota: int = 0
    used: int = 0

    def raise_if_denied(self) -> None:
        if not self.allowed:
            raise QuotaError(self.code, self.reason)


def get_quota(db: Session, manager_id: str, tier_id: str) -> int:
    """Quota for the pair; a missing row means zero."""
    row = (
        db.query(UserTierQuota.quota)
        .filter(UserTierQuota.user_id == manager_id, UserTierQuota.tier_id == tier_id)
        .first()
    )
    return row[0] if row else 0


def count_used(db: Session, manager_id: str, tier_id: str) -> int:
    """Live count of the manager's events on the tier."""
    return (
        db.query(func.count(Event.event_id))
        .filter(Event.manager_id == manager_id, Event.tier_id == tier_id)
        .scalar()
    )


def lock_quota_row(db: Session, manager_id: str, tier_id: str) -> Optional[UserTierQuota]:
    """Row-lock the (manager, tier) quota so concurrent creations serialize."""
    return (
        db.query(UserTierQuota)
        .filter(UserTierQuota.user_id == manager_id, UserTierQuota.tier_id == tier_id)
        .with_for_update()
        .first()
    )


def check_quota(db: Session, manager_id: str, tier_id: Optional[str]) -> QuotaDecision:
    """May the manager create one more event under the tier?"""
    tier = tier_service.find_tier(db, tier_id)
    if not tier or not tier.is_active:
        return QuotaDecision(
            allowed=False,
            code=ErrorCode.TIER_INVALID,
            reason="Capacity tier is invalid or inactive",
        )

    quota = get_quota(db, manager_id, tier.tier_id)
    if quota == 0:
        return QuotaDecision(
            allowed=False,
            code=ErrorCode.TIER_PERMISSION_DENIED,
            reason=f'No permission to create events on tier "{tier.name}". Contact the system owner.',
        )

    used = count_used(db, manager_id, tier.tier_id)
    if used >= quota:
        return QuotaDecision(
            allowed=False,
            code=ErrorCode.TIER_QUOTA_EXHAUSTED,
            reason=f'Quota for tier "{tier.name}" is exhausted ({used}/{quota}).',
            quota=quota,
            used=used,
        )
    return QuotaDecision(allowed=True, quota=quota, used=used)


def _validate_quota(quota: Any) -> int:
    if isinstance(quota, bool) or not isinstance(quota, int):
        raise ValidationFailedError("Quota must be a whole number", field="quota")
    if quota < 0 or quota > settings.MAX_TIER_QUOTA:
        raise ValidationFailedError(
            f"Quota must be between 0 and {settings.MAX_TIER_QUOTA}", field="quota",
        )
    return quota


def _get_manager(db: Session, manager_id: str) -> User:
    manager = db.query(User).filter(User.user_id == manager_id).first()
    if not manager or manager.role != UserRole.event_manager:
        raise NotFoundError("Event manager", manager_id)
    return manager


def _upsert(db: Session, manager_id: str, tier_id: str, quota: int) -> UserTierQuota:
    """Replace the quota for the pair, inserting the row on first use."""
    row = (
        db.query(UserTierQuota)
        .filter(UserTierQuota.user_id == manager_id, UserTierQuota.tier_id == tier_id)
        .first()
    )
    if row:
        row.quota = quota
        return row

    # The (user, tier) unique constraint rejects a concurrent second insert
    row = UserTierQuota(user_id=manager_id, tier_id=tier_id, quota=quota)
    db.add(row)
    return row


def set_quota(db: Session, actor: Actor, manager_id: str, tier_id: str, quota: int) -> UserTierQuota:
    """Replace one (manager, tier) quota."""
    actor.require(Capability.manage_quotas)
    quota = _validate_quota(quota)
    manager = _get_manager(db, manager_id)
    tier = tier_service.get_tier(db, tier_id)

    row = _upsert(db, manager.user_id, tier.tier_id, quota)
    audit_service.record(
        db,
        actor_id=actor.user_id,
        action=AuditAction.update_tier_quotas,
        details=f'Set quota for {manager.name} on tier "{tier.name}" to {quota}',
    )
    db.commit()
    db.refresh(row)
    logger.info("Set quota %d for manager %s on tier %s", quota, manager_id, tier_id)
    return row


def set_tier_quotas(db: Session, actor: Actor, manager_id: str, tier_quotas: list[tuple[str, int]]) -> list[UserTierQuota]:
    """Bulk replace; every entry is validated before anything is written."""
    actor.require(Capability.manage_quotas)
    manager = _get_manager(db, manager_id)

    known_tier_ids = {tier_id for (tier_id,) in db.query(CapacityTier.tier_id).all()}
    validated: dict[str, int] = {}  # last entry wins for a repeated tier
    for tier_id, quota in tier_quotas:
        if tier_id not in known_tier_ids:
            raise ValidationFailedError(f"Capacity tier does not exist: {tier_id}", field="tier_id")
        validated[tier_id] = _validate_quota(quota)

    rows = [_upsert(db, manager.user_id, tier_id, quota) for tier_id, quota in validated.items()]
    total = sum(validated.values())
    audit_service.record(
        db,
        actor_id=actor.user_id,
        action=AuditAction.update_tier_quotas,
        details=f"Updated tier quotas for {manager.name} (total: {total} events)",
    )
    db.commit()
    for row in rows:
        db.refresh(row)
    logger.info("Updated %d tier quota(s) for manager %s (total %d)", len(rows), manager_id, total)
    return rows


def quota_summary(db: Session, manager_id: str) -> dict[str, Any]:
    """Per active tier quota/used/remaining plus totals. Read-only projection."""
    quotas = {
        row.tier_id: row.quota
        for row in db.query(UserTierQuota).filter(UserTierQuota.user_id == manager_id).all()
    }
    used_by_tier = dict(
        db.query(Event.tier_id, func.count(Event.event_id))
        .filter(Event.manager_id == manager_id, Event.tier_id.isnot(None))
        .group_by(Event.tier_id)
        .all()
    )

    tier_quotas = []
    for tier in tier_service.list_tiers(db, active_only=True):
        quota = quotas.get(tier.tier_id, 0)
        used = used_by_tier.get(tier.tier_id, 0)
        tier_quotas.append({
            "tier_id": tier.tier_id,
            "tier_name": tier.name,
            "quota": quota,
            "used": used,
            "remaining": max(0, quota - used),
        })

    total_quota = sum(t["quota"] for t in tier_quotas)
    used_quota = sum(t["used"] for t in tier_quotas)
    return {
        "has_quota": total_quota > 0,
        "total_quota": total_quota,
        "used_quota": used_quota,
        "remaining_quota": max(0, total_quota - used_quota),
        "tier_quotas": tier_quotas,
    }


def subscriptions_overview(db: Session, actor: Actor) -> list[dict[str, Any]]:
    """Every event manager with per-tier usage and guest totals."""
    actor.require(Capability.manage_quotas)

    guest_counts = dict(
        db.query(Guest.event_id, func.count(Guest.guest_id)).group_by(Guest.event_id).all()
    )
    managers = (
        db.query(User)
        .filter(User.role == UserRole.event_manager)
        .order_by(User.created_at, User.name)
        .all()
    )

    overview = []
    for manager in managers:
        events = db.query(Event).filter(Event.manager_id == manager.user_id).all()
        guests_by_tier: dict[str, int] = {}
        for event in events:
            if event.tier_id:
                guests_by_tier[event.tier_id] = guests_by_tier.get(event.tier_id, 0) + guest_counts.get(event.event_id, 0)

        summary = quota_summary(db, manager.user_id)
        for entry in summary["tier_quotas"]:
            entry["guest_count"] = guests_by_tier.get(entry["tier_id"], 0)

        overview.append({
            "user_id": manager.user_id,
            "name": manager.name,
            "username": manager.username,
            "is_active": manager.is_active,
            "total_quota": summary["total_quota"],
            "events_used": summary["used_quota"],
            "events_remaining": summary["remaining_quota"],
            "total_guests": sum(guest_counts.get(e.event_id, 0) for e in events),
            "tier_quotas": summary["tier_quotas"],
        })
    return overview
