"""Pydantic schemas for the quota ledger."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class QuotaSet(BaseModel):
    quota: int  # range checked by the service so it reports a field-level error


class TierQuotaEntry(BaseModel):
    tier_id: str
    quota: int


class BulkQuotaSet(BaseModel):
    tier_quotas: list[TierQuotaEntry]


class QuotaOut(BaseModel):
    quota_id: str
    user_id: str
    tier_id: str
    quota: int
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TierUsageOut(BaseModel):
    tier_id: str
    tier_name: str
    quota: int
    used: int
    remaining: int


class QuotaSummaryOut(BaseModel):
    has_quota: bool
    total_quota: int
    used_quota: int
    remaining_quota: int
    tier_quotas: list[TierUsageOut]


class SubscriptionTierOut(TierUsageOut):
    guest_count: int


class SubscriptionOut(BaseModel):
    user_id: str
    name: str
    username: str
    is_active: bool
    total_quota: int
    events_used: int
    events_remaining: int
    total_guests: int
    tier_quotas: list[SubscriptionTierOut]
