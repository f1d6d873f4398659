"""Event API routes — delegates to event_service for quota and ownership enforcement."""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.event import EventCreate, EventUpdate, EventOut, EventOrganizerOut, OrganizerAssign
from app.schemas.user import UserOut
from app.services import event_service
from app.services.permission_service import resolve_actor

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Create an event; quota-bound managers must pick a tier they have room on."""
    actor = resolve_actor(db, actor_user_id)
    return event_service.create_event(
        db=db,
        actor=actor,
        name=payload.name,
        date=payload.date,
        tier_id=payload.tier_id,
        description=payload.description,
        location=payload.location,
    )


@router.get("/", response_model=list[EventOut])
def list_events(actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Events visible to the actor, newest date first."""
    actor = resolve_actor(db, actor_user_id)
    return event_service.list_events_for_actor(db, actor)


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    actor = resolve_actor(db, actor_user_id)
    return event_service.get_event_for_actor(db, actor, event_id)


@router.patch("/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    actor_user_id: str = Query(..., description="ID of the user performing the update"),
    db: Session = Depends(get_db),
):
    """Update an event (owner or bypass rights; the tier cannot change)."""
    actor = resolve_actor(db, actor_user_id)
    return event_service.update_event(db, actor, event_id, payload.model_dump(exclude_unset=True))


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Delete an event with its guests; its quota slot becomes available again."""
    actor = resolve_actor(db, actor_user_id)
    event_service.delete_event(db, actor, event_id)


@router.get("/{event_id}/organizers", response_model=list[UserOut])
def list_organizers(event_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    actor = resolve_actor(db, actor_user_id)
    return event_service.list_organizers(db, actor, event_id)


@router.post("/{event_id}/organizers", response_model=EventOrganizerOut, status_code=status.HTTP_201_CREATED)
def assign_organizer(
    event_id: str,
    payload: OrganizerAssign,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """Assign door staff to the event."""
    actor = resolve_actor(db, actor_user_id)
    return event_service.assign_organizer(db, actor, event_id, payload.organizer_id)


@router.delete("/{event_id}/organizers/{organizer_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_organizer(
    event_id: str,
    organizer_id: str,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    actor = resolve_actor(db, actor_user_id)
    event_service.remove_organizer(db, actor, event_id, organizer_id)
