"""Dashboard statistics — one record per role, discriminated by ``role``."""
from __future__ import annotations
from typing import Annotated, Literal, Union
from pydantic import BaseModel, Field


class SuperAdminStats(BaseModel):
    role: Literal["super_admin"] = "super_admin"
    total_admins: int
    total_event_managers: int
    total_events: int
    active_events: int


class AdminStats(BaseModel):
    role: Literal["admin"] = "admin"
    total_event_managers: int
    total_events: int
    active_events: int
    total_guests: int


class EventManagerStats(BaseModel):
    role: Literal["event_manager"] = "event_manager"
    total_events: int
    active_events: int
    total_guests: int
    checked_in_today: int


class OrganizerStats(BaseModel):
    role: Literal["organizer"] = "organizer"
    assigned_events: int
    total_guests: int
    checked_in_today: int


Stats = Annotated[
    Union[SuperAdminStats, AdminStats, EventManagerStats, OrganizerStats],
    Field(discriminator="role"),
]
