"""Tests for the check-in state machine.

Covers:
- SUCCESS then DUPLICATE carrying the first actor and timestamp
- Unknown codes, wrong-event codes and bad QR payloads are INVALID
- Case-insensitive code lookup, lookup by guest id, QR payloads
- Authorization is checked before the guest's state is revealed
- Exactly one SUCCESS under concurrent scans (one session per worker)
- Exactly one audit entry per guest
"""
import json
import threading
from concurrent.futures import ThreadPoolExecutor

from app.models.audit_log import AuditAction, AuditLog
from app.models.user import User
from app.services import check_in_service
from app.services.check_in_service import CheckInKind
from app.services.permission_service import actor_for
from tests.conftest import (
    add_test_guest,
    create_test_event,
    create_test_user,
    setup_manager_with_tier,
)


def _door(client, owner_id, organizers=("door-a", "door-b")):
    """Manager, event with one guest, and organizers assigned to it."""
    manager, tier = setup_manager_with_tier(client, owner_id)
    event = create_test_event(client, manager["user_id"], tier["tier_id"])
    guest = add_test_guest(client, manager["user_id"], event["event_id"], name="Hessa", category="vip", companions=1)
    staff = []
    for username in organizers:
        organizer = create_test_user(client, manager["user_id"], username, role="organizer")
        client.post(
            f"/api/events/{event['event_id']}/organizers?actor_user_id={manager['user_id']}",
            json={"organizer_id": organizer["user_id"]},
        )
        staff.append(organizer)
    return manager, event, guest, staff


def _scan(client, actor_id, code, event_id=None):
    payload = {"code": code}
    if event_id:
        payload["event_id"] = event_id
    return client.post(f"/api/check-in/code?actor_user_id={actor_id}", json=payload)


class TestCheckInOutcomes:

    def test_success_then_duplicate(self, client, owner):
        """A checks in, B scans the same code afterwards and sees A's check-in."""
        _, event, guest, (door_a, door_b) = _door(client, owner.user_id)

        first = _scan(client, door_a["user_id"], guest["access_code"], event["event_id"])
        assert first.status_code == 200
        data = first.json()
        assert data["kind"] == "SUCCESS"
        assert data["checked_in_by"] == door_a["user_id"]
        assert data["checked_in_by_name"] == door_a["name"]
        assert data["guest"]["name"] == "Hessa"
        assert data["guest"]["category"] == "vip"
        assert data["guest"]["companions"] == 1
        assert data["guest"]["is_checked_in"] is True

        second = _scan(client, door_b["user_id"], guest["access_code"], event["event_id"])
        assert second.status_code == 200
        dup = second.json()
        assert dup["kind"] == "DUPLICATE"
        assert dup["checked_in_by"] == door_a["user_id"]
        assert dup["checked_in_at"] == data["checked_in_at"]

    def test_repeated_duplicates_are_stable(self, client, owner):
        _, event, guest, (door_a, door_b) = _door(client, owner.user_id)
        _scan(client, door_a["user_id"], guest["access_code"])
        results = [_scan(client, door_b["user_id"], guest["access_code"]).json() for _ in range(5)]
        assert {r["kind"] for r in results} == {"DUPLICATE"}
        assert len({(r["checked_in_at"], r["checked_in_by"]) for r in results}) == 1

    def test_unknown_code_is_invalid(self, client, owner):
        _, _, _, (door_a, _) = _door(client, owner.user_id)
        resp = _scan(client, door_a["user_id"], "ZZZZ-ZZZZ-ZZZZ")
        assert resp.status_code == 200
        assert resp.json()["kind"] == "INVALID"
        assert resp.json()["guest"] is None

    def test_wrong_event_is_invalid(self, client, owner):
        manager, event, guest, (door_a, _) = _door(client, owner.user_id)
        other_event = create_test_event(client, manager["user_id"], event["tier_id"], name="Other")
        resp = _scan(client, door_a["user_id"], guest["access_code"], other_event["event_id"])
        assert resp.json()["kind"] == "INVALID"
        assert resp.json()["message"] == check_in_service.MSG_WRONG_EVENT

    def test_code_is_case_insensitive(self, client, owner):
        _, _, guest, (door_a, _) = _door(client, owner.user_id)
        resp = _scan(client, door_a["user_id"], f"  {guest['access_code'].lower()} ")
        assert resp.json()["kind"] == "SUCCESS"

    def test_check_in_by_guest_id(self, client, owner):
        manager, event, guest, _ = _door(client, owner.user_id, organizers=())
        resp = client.post(
            f"/api/check-in/guests/{guest['guest_id']}?actor_user_id={manager['user_id']}",
            json={"event_id": event["event_id"]},
        )
        assert resp.json()["kind"] == "SUCCESS"


class TestQrCheckIn:

    def _qr(self, client, actor_id, payload):
        return client.post(f"/api/check-in/qr?actor_user_id={actor_id}", json={"qr_data": payload})

    def test_qr_success(self, client, owner):
        _, _, guest, (door_a, _) = _door(client, owner.user_id)
        payload = json.dumps({"id": guest["guest_id"], "code": guest["access_code"]})
        assert self._qr(client, door_a["user_id"], payload).json()["kind"] == "SUCCESS"

    def test_qr_code_mismatch_is_invalid(self, client, owner):
        _, _, guest, (door_a, _) = _door(client, owner.user_id)
        payload = json.dumps({"id": guest["guest_id"], "code": "AAAA-BBBB-CCCC"})
        assert self._qr(client, door_a["user_id"], payload).json()["kind"] == "INVALID"

    def test_qr_garbage_is_invalid(self, client, owner):
        _, _, _, (door_a, _) = _door(client, owner.user_id)
        for payload in ("not json", "[1, 2]", json.dumps({"id": "x"})):
            resp = self._qr(client, door_a["user_id"], payload)
            assert resp.status_code == 200
            assert resp.json()["kind"] == "INVALID"


class TestCheckInAuthorization:

    def test_unassigned_organizer_forbidden(self, client, owner):
        manager, _, guest, _ = _door(client, owner.user_id)
        stranger = create_test_user(client, manager["user_id"], "stranger", role="organizer")
        resp = _scan(client, stranger["user_id"], guest["access_code"])
        assert resp.status_code == 403

    def test_forbidden_even_when_already_checked_in(self, client, owner):
        """An outsider learns nothing about the guest's state."""
        manager, _, guest, (door_a, _) = _door(client, owner.user_id)
        _scan(client, door_a["user_id"], guest["access_code"])
        other_manager, _ = setup_manager_with_tier(client, owner.user_id, username="rival")
        resp = _scan(client, other_manager["user_id"], guest["access_code"])
        assert resp.status_code == 403
        assert "checked_in_by" not in resp.json()

    def test_outsider_with_event_hint_learns_nothing(self, client, owner):
        """A foreign code scanned against the outsider's own event reads as unknown."""
        _, _, guest, _ = _door(client, owner.user_id)
        rival, rival_tier = setup_manager_with_tier(client, owner.user_id, username="rival")
        rival_event = create_test_event(client, rival["user_id"], rival_tier["tier_id"], name="Rival Night")

        resp = _scan(client, rival["user_id"], guest["access_code"], rival_event["event_id"])
        assert resp.status_code == 200
        assert resp.json()["kind"] == "INVALID"
        assert resp.json()["message"] == check_in_service.MSG_NOT_FOUND
        assert resp.json()["message"] == _scan(client, rival["user_id"], "ZZZZ-ZZZZ-ZZZZ").json()["message"]

    def test_inactive_event_blocks_organizer(self, client, owner):
        manager, event, guest, (door_a, _) = _door(client, owner.user_id)
        client.patch(f"/api/events/{event['event_id']}?actor_user_id={manager['user_id']}", json={"is_active": False})
        assert _scan(client, door_a["user_id"], guest["access_code"]).status_code == 403
        # The owner still can
        assert _scan(client, manager["user_id"], guest["access_code"]).json()["kind"] == "SUCCESS"

    def test_admin_bypass(self, client, owner):
        _, _, guest, _ = _door(client, owner.user_id, organizers=())
        admin = create_test_user(client, owner.user_id, "admin", role="admin")
        assert _scan(client, admin["user_id"], guest["access_code"]).json()["kind"] == "SUCCESS"


class TestConcurrentCheckIn:
    """Simultaneous scans of one guest produce exactly one winner."""

    WORKERS = 8

    def test_exactly_one_success(self, client, owner, session_factory, db):
        _, _, guest, staff = _door(client, owner.user_id, organizers=[f"door-{i}" for i in range(self.WORKERS)])
        actors = [actor_for(db.query(User).filter(User.user_id == s["user_id"]).one()) for s in staff]
        barrier = threading.Barrier(self.WORKERS)

        def scan(actor):
            session = session_factory()
            try:
                barrier.wait()
                result = check_in_service.check_in_by_code(session, actor, guest["access_code"])
                return result.kind, result.checked_in_at, result.checked_in_by
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=self.WORKERS) as pool:
            outcomes = list(pool.map(scan, actors))

        kinds = [kind for kind, _, _ in outcomes]
        assert kinds.count(CheckInKind.success) == 1
        assert kinds.count(CheckInKind.duplicate) == self.WORKERS - 1

        winner = next(o for o in outcomes if o[0] == CheckInKind.success)
        for kind, checked_in_at, checked_in_by in outcomes:
            assert checked_in_by == winner[2]
            assert checked_in_at == winner[1]

        entries = db.query(AuditLog).filter(
            AuditLog.action == AuditAction.check_in,
            AuditLog.guest_id == guest["guest_id"],
        ).all()
        assert len(entries) == 1
        assert entries[0].actor_id == winner[2]
