"""User ORM model — every role in the tenant hierarchy."""
import uuid
import enum
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from app.database import Base


class UserRole(str, enum.Enum):
    super_admin = "super_admin"
    admin = "admin"
    event_manager = "event_manager"
    organizer = "organizer"


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(100), nullable=False, unique=True)
    name = Column(String(150), nullable=False)
    role = Column(SAEnum(UserRole), nullable=False, default=UserRole.organizer)
    created_by_id = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
