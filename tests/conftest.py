"""
Shared fixtures: an in-memory SQLite app and bearer-token helpers.
"""

import copy

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from dash_access.api.app import create_app
from dash_access.api.auth import generate_token
from dash_access.models import Principal
from dash_access.store import ClientStore, NoteStore, ProfileStore


# Shaped like a row of the intake spreadsheet after formatting.
INTAKE_CLIENT = {
    "id": 1,
    "name": "Ana Diaz",
    "active": True,
    "data": {
        "firstName": "Ana",
        "lastName": "Diaz",
        "email": "ana@example.com",
        "medications": {"isOnMedications": "Yes", "list": "Sertraline 50mg"},
    },
    "insurance": {
        "paymentOption": "Insurance",
        "provider": "Aetna",
        "planName": "PPO",
        "memberId": "W123",
    },
    "billing": {
        "cardName": "Ana Diaz",
        "cardNumber": "4111111111111111",
        "cardExpiration": "12/29",
        "cardSecurityCode": "123",
        "agreedAmount": "150",
    },
    "medical": {"physicianName": "Dr. Reyes"},
    "therapist": {"name": "Sam Lee", "status": "Active"},
}


@pytest.fixture
def intake_client():
    return copy.deepcopy(INTAKE_CLIENT)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield eng
    eng.dispose()


@pytest.fixture
def app(engine):
    flask_app = create_app(engine)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def profiles(app, engine):
    return ProfileStore(engine)


@pytest.fixture
def clients(app, engine):
    return ClientStore(engine)


@pytest.fixture
def notes(app, engine):
    return NoteStore(engine)


@pytest.fixture
def bearer():
    """Build Authorization headers for a principal."""
    def _bearer(user_id="u1", email="u1@example.com", verified=True):
        token = generate_token(Principal(id=user_id, email=email, email_verified=verified))
        return {"Authorization": f"Bearer {token}"}
    return _bearer


@pytest.fixture
def user_with_role(profiles, bearer):
    """Create a complete profile with *role* and return headers for it."""
    def _make(role, user_id=None):
        uid = user_id or f"{role}-user"
        profiles.create(uid, f"{uid}@example.com", "Test", role.title(), role)
        return bearer(uid, f"{uid}@example.com")
    return _make
