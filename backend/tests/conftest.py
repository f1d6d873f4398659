"""Pytest fixtures — file-backed SQLite database, fresh for every test."""
from datetime import datetime, timedelta, timezone
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from app.database import Base, get_db
from app.main import app

# Import all models so they register with Base.metadata
from app.models.user import User, UserRole            # noqa: F401
from app.models.capacity_tier import CapacityTier     # noqa: F401
from app.models.tier_quota import UserTierQuota       # noqa: F401
from app.models.event import Event, EventOrganizer    # noqa: F401
from app.models.guest import Guest                    # noqa: F401
from app.models.audit_log import AuditLog             # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session bound to the test engine."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def owner(db):
    """The system owner (super admin), inserted directly."""
    user = User(username="owner", name="System Owner", role=UserRole.super_admin)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# ---------------------------------------------------------------------------
# Helpers: create records via the API, return the JSON response dict
# ---------------------------------------------------------------------------
def create_test_user(client: TestClient, actor_id: str, username: str,
                     role: str = "event_manager", name: str = None) -> dict:
    """Helper — POST /api/users and return response JSON."""
    resp = client.post(f"/api/users/?actor_user_id={actor_id}", json={
        "username": username,
        "name": name or username.title(),
        "role": role,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_tier(client: TestClient, actor_id: str, name: str = "Small",
                     max_guests: int = 50, is_unlimited: bool = False, min_guests: int = 0) -> dict:
    """Helper — POST /api/capacity-tiers and return response JSON."""
    resp = client.post(f"/api/capacity-tiers/?actor_user_id={actor_id}", json={
        "name": name,
        "min_guests": min_guests,
        "max_guests": None if is_unlimited else max_guests,
        "is_unlimited": is_unlimited,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def set_test_quota(client: TestClient, actor_id: str, manager_id: str, tier_id: str, quota: int) -> dict:
    """Helper — PUT /api/quotas/{manager}/{tier} and return response JSON."""
    resp = client.put(
        f"/api/quotas/{manager_id}/{tier_id}?actor_user_id={actor_id}",
        json={"quota": quota},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def make_event(client: TestClient, actor_id: str, tier_id: str = None, name: str = "Gala Dinner",
               days_ahead: int = 7):
    """Helper — POST /api/events and return the raw response."""
    date = datetime.now(timezone.utc) + timedelta(days=days_ahead)
    payload = {"name": name, "date": date.isoformat(), "location": "Main Hall"}
    if tier_id:
        payload["tier_id"] = tier_id
    return client.post(f"/api/events/?actor_user_id={actor_id}", json=payload)


def create_test_event(client: TestClient, actor_id: str, tier_id: str = None, name: str = "Gala Dinner") -> dict:
    resp = make_event(client, actor_id, tier_id, name=name)
    assert resp.status_code == 201, resp.text
    return resp.json()


def add_test_guest(client: TestClient, actor_id: str, event_id: str, name: str = "Guest",
                   category: str = "regular", companions: int = 0) -> dict:
    """Helper — POST /api/events/{id}/guests and return response JSON."""
    resp = client.post(f"/api/events/{event_id}/guests?actor_user_id={actor_id}", json={
        "name": name,
        "category": category,
        "companions": companions,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def setup_manager_with_tier(client: TestClient, owner_id: str, quota: int = 2, max_guests: int = 50,
                            username: str = "manager"):
    """A tier, an event manager, and a quota for the pair."""
    tier = create_test_tier(client, owner_id, max_guests=max_guests)
    manager = create_test_user(client, owner_id, username)
    set_test_quota(client, owner_id, manager["user_id"], tier["tier_id"], quota)
    return manager, tier
