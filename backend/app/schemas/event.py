"""Pydantic schemas for Events and organizer assignments."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class EventCreate(BaseModel):
    name: str
    date: datetime
    tier_id: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None


class EventUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    date: Optional[datetime] = None
    is_active: Optional[bool] = None
    tier_id: Optional[str] = None  # accepted only to reject a change


class EventOut(BaseModel):
    event_id: str
    manager_id: str
    tier_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    date: datetime
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OrganizerAssign(BaseModel):
    organizer_id: str


class EventOrganizerOut(BaseModel):
    assignment_id: str
    event_id: str
    organizer_id: str
    assigned_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
