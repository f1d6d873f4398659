"""Tests for User endpoints along the role hierarchy."""
from app.models.audit_log import AuditAction, AuditLog
from app.models.event import EventOrganizer
from app.models.guest import Guest
from app.models.tier_quota import UserTierQuota
from app.models.user import User, UserRole
from app.services import user_service
from tests.conftest import (
    add_test_guest,
    create_test_event,
    create_test_user,
    setup_manager_with_tier,
)


class TestUserCRUD:
    """User create / get / update / list."""

    def test_create_user(self, client, owner):
        data = create_test_user(client, owner.user_id, "alice", role="admin", name="Alice")
        assert data["name"] == "Alice"
        assert data["role"] == "admin"
        assert data["created_by_id"] == owner.user_id
        assert data["is_active"] is True
        assert "user_id" in data

    def test_get_user(self, client, owner):
        user = create_test_user(client, owner.user_id, "bob")
        resp = client.get(f"/api/users/{user['user_id']}?actor_user_id={owner.user_id}")
        assert resp.status_code == 200
        assert resp.json()["username"] == "bob"

    def test_get_user_not_found(self, client, owner):
        resp = client.get(f"/api/users/00000000-0000-0000-0000-000000000000?actor_user_id={owner.user_id}")
        assert resp.status_code == 404

    def test_update_user(self, client, owner):
        user = create_test_user(client, owner.user_id, "carol")
        resp = client.patch(
            f"/api/users/{user['user_id']}?actor_user_id={owner.user_id}",
            json={"name": "  Carol Q  "},
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Carol Q"

    def test_duplicate_username(self, client, owner):
        create_test_user(client, owner.user_id, "dana")
        resp = client.post(
            f"/api/users/?actor_user_id={owner.user_id}",
            json={"username": "dana", "name": "Other Dana", "role": "organizer"},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"]["field"] == "username"

    def test_blank_name_rejected(self, client, owner):
        resp = client.post(
            f"/api/users/?actor_user_id={owner.user_id}",
            json={"username": "blank", "name": "   ", "role": "organizer"},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"]["field"] == "name"


class TestRoleHierarchy:

    def test_admin_cannot_create_admin(self, client, owner):
        admin = create_test_user(client, owner.user_id, "admin", role="admin")
        resp = client.post(
            f"/api/users/?actor_user_id={admin['user_id']}",
            json={"username": "admin2", "name": "Admin Two", "role": "admin"},
        )
        assert resp.status_code == 403

    def test_manager_creates_only_organizers(self, client, owner):
        manager = create_test_user(client, owner.user_id, "manager")
        create_test_user(client, manager["user_id"], "door", role="organizer")
        resp = client.post(
            f"/api/users/?actor_user_id={manager['user_id']}",
            json={"username": "peer", "name": "Peer", "role": "event_manager"},
        )
        assert resp.status_code == 403

    def test_organizer_cannot_create_users(self, client, owner):
        organizer = create_test_user(client, owner.user_id, "door", role="organizer")
        resp = client.post(
            f"/api/users/?actor_user_id={organizer['user_id']}",
            json={"username": "x", "name": "X", "role": "organizer"},
        )
        assert resp.status_code == 403

    def test_unknown_actor_is_unauthenticated(self, client, owner):
        resp = client.get("/api/users/?actor_user_id=nobody")
        assert resp.status_code == 401


class TestListScoping:

    def test_manager_sees_own_creations(self, client, owner):
        manager = create_test_user(client, owner.user_id, "manager")
        other = create_test_user(client, owner.user_id, "other")
        create_test_user(client, manager["user_id"], "mine", role="organizer")
        create_test_user(client, other["user_id"], "theirs", role="organizer")

        users = client.get(f"/api/users/?actor_user_id={manager['user_id']}").json()
        assert [u["username"] for u in users] == ["mine"]

    def test_owner_sees_everyone_filtered_by_role(self, client, owner):
        manager = create_test_user(client, owner.user_id, "manager")
        create_test_user(client, manager["user_id"], "door", role="organizer")
        users = client.get(f"/api/users/?actor_user_id={owner.user_id}&role=organizer").json()
        assert [u["username"] for u in users] == ["door"]

    def test_manager_cannot_read_foreign_user(self, client, owner):
        manager = create_test_user(client, owner.user_id, "manager")
        other = create_test_user(client, owner.user_id, "other")
        resp = client.get(f"/api/users/{other['user_id']}?actor_user_id={manager['user_id']}")
        assert resp.status_code == 403


class TestDeactivation:

    def test_deactivated_user_cannot_act(self, client, owner):
        manager = create_test_user(client, owner.user_id, "manager")
        resp = client.patch(
            f"/api/users/{manager['user_id']}?actor_user_id={owner.user_id}",
            json={"is_active": False},
        )
        assert resp.json()["is_active"] is False
        resp = client.get(f"/api/users/?actor_user_id={manager['user_id']}")
        assert resp.status_code == 401

    def test_cannot_deactivate_self(self, client, owner):
        resp = client.patch(
            f"/api/users/{owner.user_id}?actor_user_id={owner.user_id}",
            json={"is_active": False},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"]["field"] == "is_active"


class TestSeed:

    def test_seed_only_into_empty_store(self, db):
        seeded = user_service.seed_super_admin(db)
        assert seeded is not None
        assert seeded.role == UserRole.super_admin
        assert user_service.seed_super_admin(db) is None
        assert db.query(User).count() == 1

    def test_no_seed_when_users_exist(self, db, owner):
        assert user_service.seed_super_admin(db) is None


def _delete(client, actor_id, user_id):
    return client.delete(f"/api/users/{user_id}?actor_user_id={actor_id}")


class TestDeleteUser:

    def test_owner_deletes_user(self, client, owner, db):
        manager = create_test_user(client, owner.user_id, "manager")
        assert _delete(client, owner.user_id, manager["user_id"]).status_code == 204
        assert client.get(f"/api/users/{manager['user_id']}?actor_user_id={owner.user_id}").status_code == 404

        entry = db.query(AuditLog).filter(AuditLog.action == AuditAction.delete_user).one()
        assert entry.actor_id == owner.user_id
        assert "manager" in entry.details

    def test_cannot_delete_self(self, client, owner):
        admin = create_test_user(client, owner.user_id, "admin", role="admin")
        assert _delete(client, admin["user_id"], admin["user_id"]).status_code == 403
        assert _delete(client, owner.user_id, owner.user_id).status_code == 403

    def test_admin_cannot_delete_peers_or_owner(self, client, owner):
        admin = create_test_user(client, owner.user_id, "admin", role="admin")
        other_admin = create_test_user(client, owner.user_id, "admin2", role="admin")
        assert _delete(client, admin["user_id"], other_admin["user_id"]).status_code == 403
        assert _delete(client, admin["user_id"], owner.user_id).status_code == 403

    def test_admin_deletes_any_manager(self, client, owner):
        admin = create_test_user(client, owner.user_id, "admin", role="admin")
        manager = create_test_user(client, owner.user_id, "manager")
        assert _delete(client, admin["user_id"], manager["user_id"]).status_code == 204

    def test_manager_deletes_only_own_organizers(self, client, owner):
        manager = create_test_user(client, owner.user_id, "manager")
        other = create_test_user(client, owner.user_id, "other")
        mine = create_test_user(client, manager["user_id"], "mine", role="organizer")
        theirs = create_test_user(client, other["user_id"], "theirs", role="organizer")

        assert _delete(client, manager["user_id"], theirs["user_id"]).status_code == 403
        assert _delete(client, manager["user_id"], other["user_id"]).status_code == 403
        assert _delete(client, manager["user_id"], mine["user_id"]).status_code == 204

    def test_manager_with_events_is_refused(self, client, owner):
        manager, tier = setup_manager_with_tier(client, owner.user_id)
        create_test_event(client, manager["user_id"], tier["tier_id"])
        resp = _delete(client, owner.user_id, manager["user_id"])
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "USER_HAS_EVENTS"
        assert client.get(f"/api/users/{manager['user_id']}?actor_user_id={owner.user_id}").status_code == 200

    def test_deleting_manager_drops_quotas(self, client, owner, db):
        manager, _ = setup_manager_with_tier(client, owner.user_id)
        assert _delete(client, owner.user_id, manager["user_id"]).status_code == 204
        assert db.query(UserTierQuota).filter(UserTierQuota.user_id == manager["user_id"]).count() == 0

    def test_deleting_organizer_keeps_check_ins(self, client, owner, db):
        manager, tier = setup_manager_with_tier(client, owner.user_id)
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        guest = add_test_guest(client, manager["user_id"], event["event_id"])
        door = create_test_user(client, manager["user_id"], "door", role="organizer")
        client.post(
            f"/api/events/{event['event_id']}/organizers?actor_user_id={manager['user_id']}",
            json={"organizer_id": door["user_id"]},
        )
        client.post(f"/api/check-in/code?actor_user_id={door['user_id']}", json={"code": guest["access_code"]})

        assert _delete(client, manager["user_id"], door["user_id"]).status_code == 204

        stored = db.query(Guest).filter(Guest.guest_id == guest["guest_id"]).one()
        assert stored.is_checked_in is True
        assert stored.checked_in_by is None
        assert db.query(EventOrganizer).filter(EventOrganizer.organizer_id == door["user_id"]).count() == 0
        entry = db.query(AuditLog).filter(AuditLog.action == AuditAction.check_in).one()
        assert entry.actor_id == door["user_id"]

        # A rescan still reports the original check-in
        rescan = client.post(
            f"/api/check-in/code?actor_user_id={manager['user_id']}", json={"code": guest["access_code"]}
        ).json()
        assert rescan["kind"] == "DUPLICATE"
        assert rescan["checked_in_at"] is not None

    def test_created_users_outlive_their_creator(self, client, owner, db):
        admin = create_test_user(client, owner.user_id, "admin", role="admin")
        manager = create_test_user(client, admin["user_id"], "manager")
        assert _delete(client, owner.user_id, admin["user_id"]).status_code == 204
        kept = db.query(User).filter(User.user_id == manager["user_id"]).one()
        assert kept.created_by_id is None
