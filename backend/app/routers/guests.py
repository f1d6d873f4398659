"""Guest API routes — event-scoped creation and import, guest-scoped edits."""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.guest import GuestCreate, GuestImport, GuestImportResult, GuestOut, GuestUpdate
from app.services import guest_service
from app.services.permission_service import resolve_actor

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/events/{event_id}/guests", response_model=GuestOut, status_code=status.HTTP_201_CREATED)
def add_guest(
    event_id: str,
    payload: GuestCreate,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """Add one guest; rejected with EVENT_FULL when the tier limit is reached."""
    actor = resolve_actor(db, actor_user_id)
    return guest_service.add_guest(db, actor, event_id, **payload.model_dump())


@router.post("/events/{event_id}/guests/import", response_model=GuestImportResult, status_code=status.HTTP_201_CREATED)
def import_guests(
    event_id: str,
    payload: GuestImport,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """Bulk import parsed spreadsheet rows, truncated to the remaining capacity."""
    actor = resolve_actor(db, actor_user_id)
    result = guest_service.import_guests(db, actor, event_id, payload.records)
    return GuestImportResult(
        created=[GuestOut.model_validate(g) for g in result.created],
        created_count=len(result.created),
        truncated_count=result.truncated_count,
        skipped_count=result.skipped_count,
    )


@router.get("/events/{event_id}/guests", response_model=list[GuestOut])
def list_guests(event_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Guest list for managers and assigned organizers."""
    actor = resolve_actor(db, actor_user_id)
    return guest_service.list_guests(db, actor, event_id)


@router.get("/guests/{guest_id}", response_model=GuestOut)
def get_guest(guest_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    actor = resolve_actor(db, actor_user_id)
    return guest_service.get_managed_guest(db, actor, guest_id)


@router.patch("/guests/{guest_id}", response_model=GuestOut)
def update_guest(
    guest_id: str,
    payload: GuestUpdate,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    actor = resolve_actor(db, actor_user_id)
    return guest_service.update_guest(db, actor, guest_id, payload.model_dump(exclude_unset=True))


@router.delete("/guests/{guest_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_guest(guest_id: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    actor = resolve_actor(db, actor_user_id)
    guest_service.delete_guest(db, actor, guest_id)
