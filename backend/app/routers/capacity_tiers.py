"""Capacity tier API routes."""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.tier import TierCreate, TierUpdate, TierOut, TierDeleteResult
from app.services import tier_service
from app.services.permission_service import resolve_actor

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[TierOut])
def list_tiers(
    actor_user_id: str = Query(...),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    """List tiers in display order. Any active user may read the catalog."""
    resolve_actor(db, actor_user_id)
    return tier_service.list_tiers(db, active_only=active_only)


@router.post("/", response_model=TierOut, status_code=status.HTTP_201_CREATED)
def create_tier(payload: TierCreate, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    actor = resolve_actor(db, actor_user_id)
    return tier_service.create_tier(db, actor, **payload.model_dump())


@router.get("/{tier_id}", response_model=TierOut)
def get_tier(tier_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    resolve_actor(db, actor_user_id)
    return tier_service.get_tier(db, tier_id)


@router.patch("/{tier_id}", response_model=TierOut)
def update_tier(
    tier_id: str,
    payload: TierUpdate,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """Partial update; bounds are re-validated on the merged tier."""
    actor = resolve_actor(db, actor_user_id)
    return tier_service.update_tier(db, actor, tier_id, payload.model_dump(exclude_unset=True))


@router.post("/{tier_id}/deactivate", response_model=TierOut)
def deactivate_tier(tier_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Soft-disable a tier so new events cannot select it."""
    actor = resolve_actor(db, actor_user_id)
    return tier_service.deactivate_tier(db, actor, tier_id)


@router.delete("/{tier_id}", response_model=TierDeleteResult)
def delete_tier(tier_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Hard-delete a tier; referencing events are reported as orphaned."""
    actor = resolve_actor(db, actor_user_id)
    orphaned = tier_service.delete_tier(db, actor, tier_id)
    return TierDeleteResult(tier_id=tier_id, orphaned_events=orphaned)
