"""Guest ORM model — one invitation with a globally unique access code."""
import uuid
import enum
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, CheckConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class GuestCategory(str, enum.Enum):
    vip = "vip"
    regular = "regular"
    media = "media"
    sponsor = "sponsor"


class Guest(Base):
    __tablename__ = "guests"
    __table_args__ = (
        CheckConstraint("companions >= 0", name="ck_guests_companions_non_negative"),
    )

    guest_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    category = Column(SAEnum(GuestCategory), nullable=False, default=GuestCategory.regular)
    companions = Column(Integer, nullable=False, default=0)
    notes = Column(String(2000), nullable=True)
    access_code = Column(String(32), nullable=False, unique=True)
    is_checked_in = Column(Boolean, nullable=False, default=False)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_by = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    event = relationship("Event", back_populates="guests")
