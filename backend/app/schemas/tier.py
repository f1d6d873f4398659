"""Pydantic schemas for capacity tiers."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class TierCreate(BaseModel):
    name: str
    min_guests: int = 0
    max_guests: Optional[int] = None
    is_unlimited: bool = False
    is_active: bool = True
    sort_order: int = 0


class TierUpdate(BaseModel):
    name: Optional[str] = None
    min_guests: Optional[int] = None
    max_guests: Optional[int] = None
    is_unlimited: Optional[bool] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class TierOut(BaseModel):
    tier_id: str
    name: str
    min_guests: int
    max_guests: Optional[int] = None
    is_unlimited: bool
    is_active: bool
    sort_order: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TierDeleteResult(BaseModel):
    tier_id: str
    orphaned_events: int
