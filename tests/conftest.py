"""Pytest configuration and fixtures.

HTTP tests run app.main:app through FastAPI's TestClient with the Supabase
dependencies replaced by tests.fakes.FakeSupabase and authentication replaced
by a fixed current user.
"""

import pytest
from fastapi.testclient import TestClient

from app.core.dependencies import get_current_user_id
from app.core.rate_limit import limiter
from app.core.realtime import access_cache
from app.database.supabase_client import get_service_supabase, get_supabase
from app.main import app
from app.scripts.seed_modules import seed_modules, seed_role_grants
from tests.fakes import FakeSupabase


@pytest.fixture(autouse=True)
def _reset_shared_state():
    """Process-wide caches and limiter buckets must not leak between tests."""
    access_cache.invalidate()
    limiter.reset()
    yield
    access_cache.invalidate()
    app.dependency_overrides.clear()


@pytest.fixture
def db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def catalog(db) -> dict:
    """Module definitions and the default role grants, seeded from modules_config. Returns key -> id."""
    module_ids = seed_modules(db)
    seed_role_grants(db, module_ids)
    return module_ids


@pytest.fixture
def client(db) -> TestClient:
    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_service_supabase] = lambda: db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login():
    """Return a function that makes the given user the authenticated caller."""
    def _login(user_id: str, email: str = "caller@acmehealth.org"):
        app.dependency_overrides[get_current_user_id] = lambda: {"id": user_id, "email": email}
        return user_id
    return _login


@pytest.fixture
def make_user(db):
    """Create a profile plus one user_roles row; returns the user id."""
    def _make_user(role: str, email: str = None, full_name: str = "Test User", **scope):
        profile = db.seed("profiles", {
            "email": email or f"{role}-{len(db.rows('profiles'))}@acmehealth.org",
            "full_name": full_name,
            "is_active": True,
            "force_password_change": False,
        })[0]
        db.seed("user_roles", {"user_id": profile["id"], "role": role, **scope})
        return profile["id"]
    return _make_user


@pytest.fixture
def org_tree(db):
    """One organization > workspace > facility > department, as a dict of ids."""
    org = db.seed("organizations", {"name": "Acme Health", "is_active": True})[0]
    ws = db.seed("workspaces", {"name": "North", "organization_id": org["id"]})[0]
    facility = db.seed("facilities", {"name": "General Hospital", "workspace_id": ws["id"]})[0]
    department = db.seed("departments", {
        "name": "Emergency",
        "category": "Hospital",
        "facility_id": facility["id"],
        "is_template": False,
        "parent_department_id": None,
        "min_staffing": 1,
    })[0]
    return {
        "organization_id": org["id"],
        "workspace_id": ws["id"],
        "facility_id": facility["id"],
        "department_id": department["id"],
    }
