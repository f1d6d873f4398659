"""Quota ledger API routes."""
import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import PermissionDeniedError
from app.schemas.quota import BulkQuotaSet, QuotaOut, QuotaSet, QuotaSummaryOut, SubscriptionOut
from app.services import quota_service
from app.services.permission_service import Capability, resolve_actor

logger = logging.getLogger(__name__)
router = APIRouter()


# Fixed paths first so they are not captured by /{manager_id}/...
@router.get("/me", response_model=QuotaSummaryOut)
def my_quota(actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """The acting manager's own quota summary."""
    actor = resolve_actor(db, actor_user_id)
    return quota_service.quota_summary(db, actor.user_id)


@router.get("/subscriptions", response_model=list[SubscriptionOut])
def subscriptions(actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Every event manager with per-tier usage and guest totals."""
    actor = resolve_actor(db, actor_user_id)
    return quota_service.subscriptions_overview(db, actor)


@router.get("/{manager_id}/summary", response_model=QuotaSummaryOut)
def quota_summary(manager_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    actor = resolve_actor(db, actor_user_id)
    if actor.user_id != manager_id and not actor.has(Capability.manage_quotas):
        raise PermissionDeniedError()
    return quota_service.quota_summary(db, manager_id)


@router.put("/{manager_id}", response_model=list[QuotaOut])
def set_tier_quotas(
    manager_id: str,
    payload: BulkQuotaSet,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """Replace several tier quotas at once; all entries are validated first."""
    actor = resolve_actor(db, actor_user_id)
    entries = [(entry.tier_id, entry.quota) for entry in payload.tier_quotas]
    return quota_service.set_tier_quotas(db, actor, manager_id, entries)


@router.put("/{manager_id}/{tier_id}", response_model=QuotaOut)
def set_quota(
    manager_id: str,
    tier_id: str,
    payload: QuotaSet,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """Replace one (manager, tier) quota."""
    actor = resolve_actor(db, actor_user_id)
    return quota_service.set_quota(db, actor, manager_id, tier_id, payload.quota)
