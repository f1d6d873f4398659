"""Pydantic schemas for door check-in."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.schemas.guest import GuestOut
from app.services.check_in_service import CheckInKind


class CodeCheckIn(BaseModel):
    code: str
    event_id: Optional[str] = None


class QrCheckIn(BaseModel):
    qr_data: str
    event_id: Optional[str] = None


class EventScope(BaseModel):
    event_id: Optional[str] = None


class CheckInOut(BaseModel):
    kind: CheckInKind
    message: str
    guest: Optional[GuestOut] = None
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[str] = None
    checked_in_by_name: Optional[str] = None

    model_config = {"from_attributes": True}
