"""CapacityTier ORM model — named guest-capacity bands."""
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime
from sqlalchemy.sql import func
from app.database import Base


class CapacityTier(Base):
    __tablename__ = "capacity_tiers"

    tier_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    min_guests = Column(Integer, nullable=False, default=0)
    max_guests = Column(Integer, nullable=True)  # ignored when is_unlimited
    is_unlimited = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
