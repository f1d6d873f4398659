"""Dashboard statistics route — the acting user's role selects the record."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.stats import Stats
from app.services import stats_service
from app.services.permission_service import resolve_actor

router = APIRouter()


@router.get("/", response_model=Stats)
def get_stats(actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    actor = resolve_actor(db, actor_user_id)
    return stats_service.dashboard_stats(db, actor)
