"""Capability-based authorization.

Each role resolves to a fixed set of capabilities; operations declare the
capability they need instead of comparing role names. Event-scoped checks
combine a capability with ownership (or assignment, for organizers).
"""
import enum
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.errors import AuthenticationError, PermissionDeniedError
from app.models.event import Event, EventOrganizer
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


class Capability(str, enum.Enum):
    manage_tiers = "manage_tiers"
    manage_quotas = "manage_quotas"
    view_reports = "view_reports"
    manage_users = "manage_users"
    manage_events = "manage_events"
    bypass_ownership = "bypass_ownership"
    bypass_quota = "bypass_quota"
    check_in = "check_in"
    view_audit = "view_audit"


ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.super_admin: frozenset(Capability),
    UserRole.admin: frozenset({
        Capability.manage_users,
        Capability.manage_events,
        Capability.bypass_ownership,
        Capability.bypass_quota,
        Capability.check_in,
        Capability.view_audit,
    }),
    UserRole.event_manager: frozenset({
        Capability.manage_users,
        Capability.manage_events,
        Capability.check_in,
        Capability.view_audit,
    }),
    UserRole.organizer: frozenset({Capability.check_in}),
}

# Which roles each role may create
CREATABLE_ROLES: dict[UserRole, frozenset[UserRole]] = {
    UserRole.super_admin: frozenset({UserRole.admin, UserRole.event_manager, UserRole.organizer}),
    UserRole.admin: frozenset({UserRole.event_manager, UserRole.organizer}),
    UserRole.event_manager: frozenset({UserRole.organizer}),
    UserRole.organizer: frozenset(),
}


@dataclass(frozen=True)
class Actor:
    """The resolved acting user: identity, role and capability set."""

    user_id: str
    role: UserRole
    capabilities: frozenset[Capability]

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require(self, capability: Capability) -> None:
        if capability not in self.capabilities:
            logger.warning("Actor %s (%s) lacks capability %s", self.user_id, self.role.value, capability.value)
            raise PermissionDeniedError()


def actor_for(user: User) -> Actor:
    return Actor(user_id=user.user_id, role=user.role, capabilities=ROLE_CAPABILITIES[user.role])


def resolve_actor(db: Session, user_id: str) -> Actor:
    """Load the acting user; unknown or deactivated users cannot act."""
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user or not user.is_active:
        raise AuthenticationError()
    return actor_for(user)


def can_manage_event(actor: Actor, event: Event) -> bool:
    """Owner of the event, or an actor allowed to bypass ownership."""
    if not actor.has(Capability.manage_events):
        return False
    return actor.has(Capability.bypass_ownership) or event.manager_id == actor.user_id


def require_event_manager(actor: Actor, event: Event) -> None:
    if not can_manage_event(actor, event):
        raise PermissionDeniedError()


def is_assigned_organizer(db: Session, organizer_id: str, event_id: str) -> bool:
    return (
        db.query(EventOrganizer.assignment_id)
        .filter(EventOrganizer.event_id == event_id, EventOrganizer.organizer_id == organizer_id)
        .first()
        is not None
    )


def can_check_in(db: Session, actor: Actor, event: Event) -> bool:
    """Owner, assigned organizer, or bypass rights."""
    if not actor.has(Capability.check_in):
        return False
    if actor.has(Capability.bypass_ownership) or event.manager_id == actor.user_id:
        return True
    return actor.role == UserRole.organizer and event.is_active and is_assigned_organizer(db, actor.user_id, event.event_id)
