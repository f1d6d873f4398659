"""Report records — one fixed shape per report kind, discriminated by ``kind``."""
from __future__ import annotations
from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from app.models.audit_log import AuditAction
from app.models.guest import GuestCategory


class CategoryBreakdown(BaseModel):
    vip: int = 0
    regular: int = 0
    media: int = 0
    sponsor: int = 0


class UserBrief(BaseModel):
    user_id: str
    name: str
    username: str
    is_active: bool = True
    created_at: Optional[datetime] = None


class EventRow(BaseModel):
    event_id: str
    name: str
    date: datetime
    location: Optional[str] = None
    is_active: bool
    manager_id: str
    manager_name: Optional[str] = None
    total_guests: int
    checked_in: int
    pending: int
    check_in_rate: int
    organizers_count: int
    category_breakdown: CategoryBreakdown


class ManagerRow(BaseModel):
    user_id: str
    name: str
    username: str
    is_active: bool
    events_count: int
    total_guests: int
    checked_in: int


class OrganizerRow(BaseModel):
    user_id: str
    name: str
    username: str
    is_active: bool
    assigned_events_count: int


class AdminSummary(BaseModel):
    event_managers_count: int
    organizers_count: int
    events_count: int
    total_guests: int
    checked_in_guests: int
    check_in_rate: int


class AdminReport(BaseModel):
    kind: Literal["admin"] = "admin"
    admin: UserBrief
    summary: AdminSummary
    event_managers: list[ManagerRow]
    events: list[EventRow]


class EventManagerSummary(BaseModel):
    events_count: int
    active_events_count: int
    total_guests: int
    checked_in_guests: int
    check_in_rate: int
    checked_in_today: int
    created_organizers_count: int
    assigned_organizers_count: int


class EventManagerReport(BaseModel):
    kind: Literal["event_manager"] = "event_manager"
    manager: UserBrief
    summary: EventManagerSummary
    events: list[EventRow]
    organizers: list[OrganizerRow]


class EventsSummary(BaseModel):
    events_count: int
    active_events_count: int
    total_guests: int
    checked_in_guests: int
    check_in_rate: int


class EventsReport(BaseModel):
    kind: Literal["events"] = "events"
    summary: EventsSummary
    events: list[EventRow]


class GuestRow(BaseModel):
    guest_id: str
    name: str
    phone: Optional[str] = None
    category: GuestCategory
    companions: int
    notes: Optional[str] = None
    access_code: str
    is_checked_in: bool
    checked_in_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class GuestsSummary(BaseModel):
    total_guests: int
    checked_in: int
    pending: int
    total_companions: int
    check_in_rate: int
    category_breakdown: CategoryBreakdown


class GuestsReport(BaseModel):
    kind: Literal["guests"] = "guests"
    event: EventRow
    summary: GuestsSummary
    guests: list[GuestRow]
    organizers: list[UserBrief]


class AuditRow(BaseModel):
    audit_id: str
    action: AuditAction
    details: Optional[str] = None
    created_at: datetime
    actor_id: str
    actor_name: Optional[str] = None
    event_id: Optional[str] = None
    event_name: Optional[str] = None


class AuditSummary(BaseModel):
    total_actions: int
    action_counts: dict[str, int]


class AuditReport(BaseModel):
    kind: Literal["audit"] = "audit"
    summary: AuditSummary
    entries: list[AuditRow]


Report = Annotated[
    Union[AdminReport, EventManagerReport, EventsReport, GuestsReport, AuditReport],
    Field(discriminator="kind"),
]
