"""Event and EventOrganizer ORM models."""
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Event(Base):
    __tablename__ = "events"

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    manager_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    # Plain column: may outlive the tier it points at
    tier_id = Column(String(36), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(2000), nullable=True)
    location = Column(String(500), nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    guests = relationship("Guest", back_populates="event", cascade="all, delete-orphan")
    organizers = relationship("EventOrganizer", back_populates="event", cascade="all, delete-orphan")


class EventOrganizer(Base):
    __tablename__ = "event_organizers"
    __table_args__ = (
        UniqueConstraint("event_id", "organizer_id", name="uq_event_organizers_event_organizer"),
    )

    assignment_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False, index=True)
    organizer_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    assigned_at = Column(DateTime(timezone=True), server_default=func.now())

    event = relationship("Event", back_populates="organizers")
