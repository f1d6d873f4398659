"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.models.user import UserRole


class UserCreate(BaseModel):
    username: str
    name: str
    role: UserRole = UserRole.organizer


class UserUpdate(BaseModel):
    name: Optional[str] = None
    is_active: Optional[bool] = None


class UserOut(BaseModel):
    user_id: str
    username: str
    name: str
    role: UserRole
    created_by_id: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
