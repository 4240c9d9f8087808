"""Pytest configuration and fixtures."""
import os
import sys
from pathlib import Path

# Ensure backend root is on path when running pytest from repo root or backend
backend = Path(__file__).resolve().parent.parent
if str(backend) not in sys.path:
    sys.path.insert(0, str(backend))

# Settings are read at import time; keep tests offline and unthrottled
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ["MAPBOX_TOKEN"] = ""
os.environ["RESEND_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient

import main
from hospitofind.auth.passwords import hash_password
from hospitofind.auth.tokens import create_access_token
from hospitofind.data.db import init_db
from hospitofind.data.hospitals_repo import create_hospital
from hospitofind.data.users_repo import create_user
from hospitofind.search.cache import ProximityCache

TEST_PASSWORD = "secret123"


class FakeGeocoder:
    """Stands in for GeocodingClient; returns fixed coordinates and records addresses."""

    def __init__(self, result=(None, None)):
        self.result = result
        self.addresses: list[str] = []

    def geocode(self, address: str):
        self.addresses.append(address)
        return self.result


class FakeMailer:
    def __init__(self):
        self.verifications: list[tuple[str, str, str]] = []
        self.resets: list[tuple[str, str]] = []

    def send_verification(self, to: str, name: str, token: str) -> bool:
        self.verifications.append((to, name, token))
        return True

    def send_password_reset(self, to: str, token: str) -> bool:
        self.resets.append((to, token))
        return True


@pytest.fixture
def db(tmp_path):
    path = tmp_path / "hospitofind.db"
    init_db(path)
    return path


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(db, geocoder, mailer):
    """TestClient with the app pointed at a temp DB, fresh caches and offline collaborators."""
    state = main.app.state
    state.db_path = db
    state.proximity_cache = ProximityCache()
    state.featured_cache = ProximityCache()
    state.geocoder = geocoder
    state.mailer = mailer
    return TestClient(main.app)


@pytest.fixture
def make_user(db):
    def _make(username="ada", email=None, role="user", is_verified=True, password=TEST_PASSWORD):
        return create_user(
            db,
            username=username,
            email=email or f"{username}@example.com",
            name=username.capitalize(),
            password_hash=hash_password(password),
            role=role,
            is_verified=is_verified,
        )

    return _make


def bearer(user) -> dict[str, str]:
    token = create_access_token(main.app.state.settings, user_id=user.user_id, username=user.username, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(make_user):
    return make_user("ada")


@pytest.fixture
def admin(make_user):
    return make_user("root", role="admin")


@pytest.fixture
def make_hospital(db):
    def _make(name="Lagos General Hospital", city="Lagos", state="Nigeria", **kwargs):
        kwargs.setdefault("verified", True)
        return create_hospital(db, name=name, city=city, state=state, **kwargs)

    return _make


@pytest.fixture
def auth():
    """auth(user) -> Authorization header carrying a fresh access token."""
    return bearer
