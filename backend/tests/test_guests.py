"""Tests for guest ingestion under the capacity enforcer.

Covers:
- Single add is rejected with EVENT_FULL at the tier limit
- Bulk import is truncated to the remaining capacity, never failed
- Unlimited and tier-less events take every row
- Loosely-keyed import rows (header aliases, empty names skipped)
- Guest edit / delete permissions and audit entries
"""
from app.models.audit_log import AuditAction, AuditLog
from app.services import capacity_service, guest_service
from tests.conftest import (
    add_test_guest,
    create_test_event,
    create_test_tier,
    create_test_user,
    set_test_quota,
    setup_manager_with_tier,
)


def _import(client, actor_id, event_id, records):
    return client.post(
        f"/api/events/{event_id}/guests/import?actor_user_id={actor_id}",
        json={"records": records},
    )


def _rows(count, prefix="Guest"):
    return [{"name": f"{prefix} {i}"} for i in range(count)]


class TestAddGuest:

    def test_add_guest_issues_access_code(self, client, owner):
        manager, tier = setup_manager_with_tier(client, owner.user_id)
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        guest = add_test_guest(client, manager["user_id"], event["event_id"], name="Layla", category="vip", companions=2)
        assert guest["name"] == "Layla"
        assert guest["category"] == "vip"
        assert guest["companions"] == 2
        assert guest["is_checked_in"] is False
        assert len(guest["access_code"]) == 14

    def test_event_full_rejects_single_add(self, client, owner):
        manager, tier = setup_manager_with_tier(client, owner.user_id, max_guests=2)
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        add_test_guest(client, manager["user_id"], event["event_id"], name="One")
        add_test_guest(client, manager["user_id"], event["event_id"], name="Two")

        resp = client.post(
            f"/api/events/{event['event_id']}/guests?actor_user_id={manager['user_id']}",
            json={"name": "Three"},
        )
        assert resp.status_code == 403
        assert resp.json()["detail"]["code"] == "EVENT_FULL"

    def test_negative_companions_rejected(self, client, owner):
        manager, tier = setup_manager_with_tier(client, owner.user_id)
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        resp = client.post(
            f"/api/events/{event['event_id']}/guests?actor_user_id={manager['user_id']}",
            json={"name": "Bad", "companions": -1},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"]["field"] == "companions"

    def test_organizer_cannot_add(self, client, owner):
        manager, tier = setup_manager_with_tier(client, owner.user_id)
        organizer = create_test_user(client, manager["user_id"], "door", role="organizer")
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        client.post(
            f"/api/events/{event['event_id']}/organizers?actor_user_id={manager['user_id']}",
            json={"organizer_id": organizer["user_id"]},
        )
        resp = client.post(
            f"/api/events/{event['event_id']}/guests?actor_user_id={organizer['user_id']}",
            json={"name": "Crasher"},
        )
        assert resp.status_code == 403
        # Assigned organizers can still read the door list
        resp = client.get(f"/api/events/{event['event_id']}/guests?actor_user_id={organizer['user_id']}")
        assert resp.status_code == 200


class TestImportTruncation:

    def test_import_truncated_to_remaining(self, client, owner):
        """48 of 50 taken: importing 49 creates 2 and drops 47."""
        manager, tier = setup_manager_with_tier(client, owner.user_id, max_guests=50)
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        first = _import(client, manager["user_id"], event["event_id"], _rows(48, "Early"))
        assert first.json()["created_count"] == 48

        resp = _import(client, manager["user_id"], event["event_id"], _rows(49, "Late"))
        assert resp.status_code == 201
        data = resp.json()
        assert data["created_count"] == 2
        assert len(data["created"]) == 2
        assert data["truncated_count"] == 47
        assert [g["name"] for g in data["created"]] == ["Late 0", "Late 1"]

    def test_import_into_full_event_creates_nothing(self, client, owner):
        manager, tier = setup_manager_with_tier(client, owner.user_id, max_guests=1)
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        add_test_guest(client, manager["user_id"], event["event_id"])

        resp = _import(client, manager["user_id"], event["event_id"], _rows(5))
        assert resp.status_code == 201
        assert resp.json()["created_count"] == 0
        assert resp.json()["truncated_count"] == 5

    def test_unlimited_tier_takes_everything(self, client, owner):
        tier = create_test_tier(client, owner.user_id, name="Unlimited", is_unlimited=True)
        manager = create_test_user(client, owner.user_id, "manager")
        set_test_quota(client, owner.user_id, manager["user_id"], tier["tier_id"], 1)
        event = create_test_event(client, manager["user_id"], tier["tier_id"])

        resp = _import(client, manager["user_id"], event["event_id"], _rows(120))
        assert resp.json()["created_count"] == 120
        assert resp.json()["truncated_count"] == 0

    def test_tierless_event_takes_everything(self, client, owner):
        event = create_test_event(client, owner.user_id, tier_id=None)
        resp = _import(client, owner.user_id, event["event_id"], _rows(75))
        assert resp.json()["created_count"] == 75

    def test_check_capacity_decision(self, client, owner, db):
        manager, tier = setup_manager_with_tier(client, owner.user_id, max_guests=10)
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        _import(client, manager["user_id"], event["event_id"], _rows(7))

        decision = capacity_service.check_capacity(db, event["event_id"], 5)
        assert (decision.allowed_count, decision.truncated, decision.dropped) == (3, True, 2)
        assert (decision.limit, decision.current) == (10, 7)

        decision = capacity_service.check_capacity(db, event["event_id"], 3)
        assert decision.truncated is False


class TestImportNormalization:

    def test_aliases_and_skipped_rows(self, client, owner):
        manager, tier = setup_manager_with_tier(client, owner.user_id)
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        records = [
            {"Name": "Omar", "Phone": "0500000000", "Category": "VIP", "Companions": "3"},
            {"الاسم": "سارة", "الفئة": "media", "عدد المرافقين": 1, "ملاحظات": "press"},
            {"name": "Nobody", "category": "astronaut", "companions": "lots"},
            {"name": "   "},
            {"phone": "0511111111"},
        ]
        data = _import(client, manager["user_id"], event["event_id"], records).json()
        assert data["created_count"] == 3
        assert data["skipped_count"] == 2
        assert data["truncated_count"] == 0

        by_name = {g["name"]: g for g in data["created"]}
        assert by_name["Omar"]["category"] == "vip"
        assert by_name["Omar"]["companions"] == 3
        assert by_name["Omar"]["phone"] == "0500000000"
        assert by_name["سارة"]["category"] == "media"
        assert by_name["سارة"]["notes"] == "press"
        assert by_name["Nobody"]["category"] == "regular"
        assert by_name["Nobody"]["companions"] == 0

    def test_normalize_record_without_name(self):
        assert guest_service.normalize_import_record({"Phone": "123"}) is None

    def test_import_writes_one_audit_entry(self, client, owner, db):
        manager, tier = setup_manager_with_tier(client, owner.user_id)
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        _import(client, manager["user_id"], event["event_id"], _rows(4))
        entries = db.query(AuditLog).filter(AuditLog.action == AuditAction.upload_guests).all()
        assert len(entries) == 1
        assert entries[0].event_id == event["event_id"]


class TestGuestEdit:

    def test_update_guest(self, client, owner):
        manager, tier = setup_manager_with_tier(client, owner.user_id)
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        guest = add_test_guest(client, manager["user_id"], event["event_id"])
        resp = client.patch(
            f"/api/guests/{guest['guest_id']}?actor_user_id={manager['user_id']}",
            json={"name": "Renamed", "category": "sponsor"},
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Renamed"
        assert resp.json()["category"] == "sponsor"
        assert resp.json()["access_code"] == guest["access_code"]

    def test_delete_guest_keeps_audit(self, client, owner, db):
        manager, tier = setup_manager_with_tier(client, owner.user_id)
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        guest = add_test_guest(client, manager["user_id"], event["event_id"])
        resp = client.delete(f"/api/guests/{guest['guest_id']}?actor_user_id={manager['user_id']}")
        assert resp.status_code == 204
        assert client.get(f"/api/guests/{guest['guest_id']}?actor_user_id={manager['user_id']}").status_code == 404
        actions = [e.action for e in db.query(AuditLog).filter(AuditLog.guest_id == guest["guest_id"]).order_by(AuditLog.created_at).all()]
        assert actions == [AuditAction.add_guest, AuditAction.delete_guest]

    def test_other_manager_cannot_edit(self, client, owner):
        manager, tier = setup_manager_with_tier(client, owner.user_id)
        other = create_test_user(client, owner.user_id, "other")
        event = create_test_event(client, manager["user_id"], tier["tier_id"])
        guest = add_test_guest(client, manager["user_id"], event["event_id"])
        resp = client.patch(
            f"/api/guests/{guest['guest_id']}?actor_user_id={other['user_id']}",
            json={"name": "Mine now"},
        )
        assert resp.status_code == 403
