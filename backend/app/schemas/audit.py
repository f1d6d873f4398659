"""Pydantic schemas for the audit trail."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.models.audit_log import AuditAction


class AuditOut(BaseModel):
    audit_id: str
    actor_id: str
    event_id: Optional[str] = None
    guest_id: Optional[str] = None
    action: AuditAction
    details: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditSummaryOut(BaseModel):
    total_actions: int
    action_counts: dict[str, int]
