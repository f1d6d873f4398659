"""Pydantic schemas for Guests and bulk import."""
from __future__ import annotations
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel

from app.models.guest import GuestCategory


class GuestCreate(BaseModel):
    name: str
    phone: Optional[str] = None
    category: GuestCategory = GuestCategory.regular
    companions: int = 0
    notes: Optional[str] = None


class GuestUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    category: Optional[GuestCategory] = None
    companions: Optional[int] = None
    notes: Optional[str] = None


class GuestOut(BaseModel):
    guest_id: str
    event_id: str
    name: str
    phone: Optional[str] = None
    category: GuestCategory
    companions: int
    notes: Optional[str] = None
    access_code: str
    is_checked_in: bool
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class GuestImport(BaseModel):
    # Rows as parsed from a spreadsheet; keys may be any known header alias
    records: list[dict[str, Any]]


class GuestImportResult(BaseModel):
    created: list[GuestOut]
    created_count: int
    truncated_count: int
    skipped_count: int
