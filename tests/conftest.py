"""Pytest configuration and shared fixtures."""

import os
import tempfile

# Point the app at a throwaway database before anything imports extensions
_db_dir = tempfile.mkdtemp(prefix="backoffice-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ.pop("INQUIRY_WEBHOOK_URL", None)
os.environ.pop("INQUIRY_WEBHOOK_SECRET", None)

import pytest

from app import app as flask_app
from extensions import db_session, drop_db, init_db
from models import Agent

ADMIN_PASSWORD = "admin-secret"
AGENT_PASSWORD = "agent-secret"


@pytest.fixture(autouse=True)
def fresh_database():
    """Every test starts with empty tables."""
    db_session.remove()
    drop_db()
    init_db()
    yield
    db_session.remove()


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True)
    return flask_app


def _create_account(name, email, password, role):
    agent = Agent(name=name, email=email, role=role)
    agent.set_password(password)
    db_session.add(agent)
    db_session.commit()
    account = {"id": agent.id, "name": name, "email": email, "password": password, "role": role}
    db_session.remove()
    return account


@pytest.fixture
def admin_account():
    return _create_account("Sara Admin", "admin@agency.example", ADMIN_PASSWORD, "admin")


@pytest.fixture
def agent_account():
    return _create_account("Omar Agent", "omar@agency.example", AGENT_PASSWORD, "agent")


@pytest.fixture
def other_agent_account():
    return _create_account("Lina Agent", "lina@agency.example", AGENT_PASSWORD, "agent")


def _logged_in_client(app, account):
    client = app.test_client()
    response = client.post("/api/auth/login", json={"email": account["email"], "password": account["password"]})
    assert response.status_code == 200, response.get_json()
    return client


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app, admin_account):
    return _logged_in_client(app, admin_account)


@pytest.fixture
def agent_client(app, agent_account):
    return _logged_in_client(app, agent_account)


@pytest.fixture
def other_agent_client(app, other_agent_account):
    return _logged_in_client(app, other_agent_account)


@pytest.fixture
def khan_record() -> dict:
    """The reference booking used across normalizer and renderer tests."""
    return {
        "id": "bk-001",
        "customerName": "A. Khan",
        "customerEmail": "a@x.com",
        "package": "Umrah 10D",
        "date": "2024-05-01",
        "hotels": [{"name": "Hilton", "checkIn": "2024-05-02", "checkOut": "2024-05-09"}],
    }


@pytest.fixture
def booking_payload() -> dict:
    return {
        "customerName": "A. Khan",
        "customerEmail": "a@x.com",
        "package": "Umrah 10D",
        "date": "2024-05-01",
    }
