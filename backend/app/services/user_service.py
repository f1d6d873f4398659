"""User administration along the role hierarchy."""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import ErrorCode, NotFoundError, PermissionDeniedError, ValidationFailedError
from app.models.audit_log import AuditAction
from app.models.event import Event, EventOrganizer
from app.models.guest import Guest
from app.models.tier_quota import UserTierQuota
from app.models.user import User, UserRole
from app.services import audit_service
from app.services.permission_service import CREATABLE_ROLES, Actor, Capability

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("name", "is_active")


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFoundError("User", user_id)
    return user


def _may_administer(actor: Actor, user: User) -> bool:
    """Bypass rights cover everyone below super admin; others only their own creations."""
    if user.user_id == actor.user_id:
        return True
    if user.role == UserRole.super_admin:
        return actor.role == UserRole.super_admin
    if actor.has(Capability.bypass_ownership):
        return user.role in CREATABLE_ROLES[actor.role] or actor.role == UserRole.super_admin
    return user.created_by_id == actor.user_id


def create_user(db: Session, actor: Actor, username: str, name: str, role: UserRole) -> User:
    actor.require(Capability.manage_users)
    if role not in CREATABLE_ROLES[actor.role]:
        logger.warning("Actor %s (%s) may not create %s users", actor.user_id, actor.role.value, role.value)
        raise PermissionDeniedError(f"A {actor.role.value} cannot create {role.value} users")
    if not username or not username.strip():
        raise ValidationFailedError("Username is required", field="username")
    if not name or not name.strip():
        raise ValidationFailedError("Name is required", field="name")

    username = username.strip()
    if db.query(User.user_id).filter(User.username == username).first():
        raise ValidationFailedError("Username is already taken", field="username")

    user = User(username=username, name=name.strip(), role=role, created_by_id=actor.user_id)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created %s user %s (%s) by %s", role.value, user.user_id, username, actor.user_id)
    return user


def list_users(db: Session, actor: Actor, role: Optional[UserRole] = None) -> list[User]:
    """Bypass rights see everyone; others see the users they created."""
    actor.require(Capability.manage_users)
    query = db.query(User)
    if not actor.has(Capability.bypass_ownership):
        query = query.filter(User.created_by_id == actor.user_id)
    if role:
        query = query.filter(User.role == role)
    return query.order_by(User.created_at, User.name).all()


def get_user_for_actor(db: Session, actor: Actor, user_id: str) -> User:
    user = get_user(db, user_id)
    if not _may_administer(actor, user):
        raise PermissionDeniedError()
    return user


def update_user(db: Session, actor: Actor, user_id: str, updates: dict[str, Any]) -> User:
    """Rename or (de)activate a user. Nobody deactivates themselves."""
    actor.require(Capability.manage_users)
    user = get_user_for_actor(db, actor, user_id)

    updates = {k: v for k, v in updates.items() if k in _EDITABLE_FIELDS}
    if "name" in updates and (not updates["name"] or not updates["name"].strip()):
        raise ValidationFailedError("Name is required", field="name")
    if updates.get("is_active") is False and user.user_id == actor.user_id:
        raise ValidationFailedError("You cannot deactivate yourself", field="is_active")
    if "is_active" in updates and updates["is_active"] is None:
        del updates["is_active"]

    for field, value in updates.items():
        setattr(user, field, value.strip() if field == "name" else value)
    db.commit()
    db.refresh(user)
    logger.info("Updated user %s (%s)", user_id, ", ".join(updates))
    return user


def seed_super_admin(db: Session) -> Optional[User]:
    """Create the system owner when no user exists yet."""
    if db.query(User.user_id).first():
        return None
    owner = User(
        username=settings.SUPER_ADMIN_USERNAME,
        name=settings.SUPER_ADMIN_NAME,
        role=UserRole.super_admin,
    )
    db.add(owner)
    db.commit()
    db.refresh(owner)
    logger.info("Seeded super admin %s (%s)", owner.user_id, owner.username)
    return owner


def _may_delete(actor: Actor, user: User) -> bool:
    """Only roles the actor could create; without bypass rights, only its own creations."""
    if user.role not in CREATABLE_ROLES[actor.role]:
        return False
    return actor.has(Capability.bypass_ownership) or user.created_by_id == actor.user_id


def delete_user(db: Session, actor: Actor, user_id: str) -> None:
    """Remove a user below the actor in the hierarchy.

    A user who still manages events is refused; delete the events or
    deactivate the user instead. Quota rows and organizer assignments go
    with the user. Guests they checked in stay checked in, with the stamp's
    actor cleared (the audit trail keeps the name). Users they created stay,
    without a creator.
    """
    actor.require(Capability.manage_users)
    user = get_user(db, user_id)
    if user.user_id == actor.user_id:
        raise PermissionDeniedError("You cannot delete your own account")
    if not _may_delete(actor, user):
        logger.warning("Actor %s (%s) may not delete %s user %s", actor.user_id, actor.role.value, user.role.value, user_id)
        raise PermissionDeniedError()

    owned = db.query(Event).filter(Event.manager_id == user_id).count()
    if owned:
        raise ValidationFailedError(
            f"User still manages {owned} event(s); delete them or deactivate the user",
            field="user_id",
            code=ErrorCode.USER_HAS_EVENTS,
        )

    db.query(UserTierQuota).filter(UserTierQuota.user_id == user_id).delete(synchronize_session=False)
    db.query(EventOrganizer).filter(EventOrganizer.organizer_id == user_id).delete(synchronize_session=False)
    db.query(Guest).filter(Guest.checked_in_by == user_id).update({Guest.checked_in_by: None}, synchronize_session=False)
    db.query(User).filter(User.created_by_id == user_id).update({User.created_by_id: None}, synchronize_session=False)
    role, username = user.role, user.username
    db.delete(user)
    audit_service.record(
        db,
        actor_id=actor.user_id,
        action=AuditAction.delete_user,
        details=f"Deleted {role.value} user: {username}",
    )
    db.commit()
    logger.info("Deleted %s user %s (%s) by %s", role.value, user_id, username, actor.user_id)
