"""User API routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import UserRole
from app.schemas.user import UserCreate, UserUpdate, UserOut
from app.services import user_service
from app.services.permission_service import resolve_actor

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    actor_user_id: str = Query(..., description="ID of the user performing the action"),
    db: Session = Depends(get_db),
):
    """Create a user one level (or more) below the actor."""
    actor = resolve_actor(db, actor_user_id)
    return user_service.create_user(db, actor, username=payload.username, name=payload.name, role=payload.role)


@router.get("/", response_model=list[UserOut])
def list_users(
    actor_user_id: str = Query(...),
    role: Optional[UserRole] = Query(None),
    db: Session = Depends(get_db),
):
    """List users visible to the actor, optionally by role."""
    actor = resolve_actor(db, actor_user_id)
    return user_service.list_users(db, actor, role=role)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Fetch a single user by ID."""
    actor = resolve_actor(db, actor_user_id)
    return user_service.get_user_for_actor(db, actor, user_id)


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: str,
    payload: UserUpdate,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """Rename or (de)activate a user (partial update)."""
    actor = resolve_actor(db, actor_user_id)
    return user_service.update_user(db, actor, user_id, payload.model_dump(exclude_unset=True))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Delete a user below the actor; users who still manage events are refused."""
    actor = resolve_actor(db, actor_user_id)
    user_service.delete_user(db, actor, user_id)
