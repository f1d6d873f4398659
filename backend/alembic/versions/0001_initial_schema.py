"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates all tables for the Event Access Manager:
users, capacity_tiers, user_tier_quotas, events, event_organizers,
guests, audit_logs.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum("super_admin", "admin", "event_manager", "organizer", name="userrole")
guest_category = sa.Enum("vip", "regular", "media", "sponsor", name="guestcategory")
audit_action = sa.Enum(
    "create_event", "update_event", "delete_event", "assign_organizer", "remove_organizer",
    "add_guest", "upload_guests", "update_guest", "delete_guest", "check_in", "update_tier_quotas", "delete_user",
    name="auditaction",
)


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False, unique=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("created_by_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- capacity_tiers ---
    op.create_table(
        "capacity_tiers",
        sa.Column("tier_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("min_guests", sa.Integer, nullable=False, server_default="0"),
        sa.Column("max_guests", sa.Integer, nullable=True),
        sa.Column("is_unlimited", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- user_tier_quotas ---
    op.create_table(
        "user_tier_quotas",
        sa.Column("quota_id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False, index=True),
        sa.Column("tier_id", sa.String(36), nullable=False, index=True),
        sa.Column("quota", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "tier_id", name="uq_user_tier_quotas_user_tier"),
        sa.CheckConstraint("quota >= 0 AND quota <= 100", name="ck_user_tier_quotas_quota_range"),
    )

    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(36), primary_key=True),
        sa.Column("manager_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False, index=True),
        sa.Column("tier_id", sa.String(36), nullable=True, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(2000), nullable=True),
        sa.Column("location", sa.String(500), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- event_organizers ---
    op.create_table(
        "event_organizers",
        sa.Column("assignment_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("organizer_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False, index=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "organizer_id", name="uq_event_organizers_event_organizer"),
    )

    # --- guests ---
    op.create_table(
        "guests",
        sa.Column("guest_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("category", guest_category, nullable=False),
        sa.Column("companions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("notes", sa.String(2000), nullable=True),
        sa.Column("access_code", sa.String(32), nullable=False, unique=True),
        sa.Column("is_checked_in", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_by", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("companions >= 0", name="ck_guests_companions_non_negative"),
    )

    # --- audit_logs (append-only; no foreign keys so entries outlive their subjects) ---
    op.create_table(
        "audit_logs",
        sa.Column("audit_id", sa.String(36), primary_key=True),
        sa.Column("actor_id", sa.String(36), nullable=False, index=True),
        sa.Column("event_id", sa.String(36), nullable=True, index=True),
        sa.Column("guest_id", sa.String(36), nullable=True),
        sa.Column("action", audit_action, nullable=False, index=True),
        sa.Column("details", sa.String(2000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("guests")
    op.drop_table("event_organizers")
    op.drop_table("events")
    op.drop_table("user_tier_quotas")
    op.drop_table("capacity_tiers")
    op.drop_table("users")
    audit_action.drop(op.get_bind(), checkfirst=True)
    guest_category.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
