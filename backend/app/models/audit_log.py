"""AuditLog ORM model — append-only record of state-changing actions."""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, Enum as SAEnum
from app.database import Base
from app.timeutils import utcnow


class AuditAction(str, enum.Enum):
    create_event = "create_event"
    update_event = "update_event"
    delete_event = "delete_event"
    assign_organizer = "assign_organizer"
    remove_organizer = "remove_organizer"
    add_guest = "add_guest"
    upload_guests = "upload_guests"
    update_guest = "update_guest"
    delete_guest = "delete_guest"
    check_in = "check_in"
    update_tier_quotas = "update_tier_quotas"
    delete_user = "delete_user"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    # event_id / guest_id are not foreign keys: entries outlive what they describe
    audit_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    actor_id = Column(String(36), nullable=False, index=True)
    event_id = Column(String(36), nullable=True, index=True)
    guest_id = Column(String(36), nullable=True)
    action = Column(SAEnum(AuditAction), nullable=False, index=True)
    details = Column(String(2000), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
