"""UserTierQuota ORM model — events a manager may create per tier."""
import uuid
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from app.database import Base


class UserTierQuota(Base):
    __tablename__ = "user_tier_quotas"
    __table_args__ = (
        UniqueConstraint("user_id", "tier_id", name="uq_user_tier_quotas_user_tier"),
        CheckConstraint("quota >= 0 AND quota <= 100", name="ck_user_tier_quotas_quota_range"),
    )

    quota_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    # No FK: quota rows are purged when a tier is deleted, events are not
    tier_id = Column(String(36), nullable=False, index=True)
    quota = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
