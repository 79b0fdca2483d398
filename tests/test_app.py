"""Tests for app-level routes, error handlers and CLI commands."""

from extensions import db_session
from models import Agent


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"ok": True}


def test_unknown_route_is_json(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Not Found - /api/nothing-here"}


def test_wrong_method_is_json(client):
    response = client.delete("/health")
    assert response.status_code == 405
    assert "error" in response.get_json()


def test_create_admin_command(app, client):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create-admin", "--name", "Sara", "--email", "Sara@Agency.com",
                                 "--password", "admin-pass"])
    assert result.exit_code == 0, result.output
    assert "Created admin sara@agency.com" in result.output

    agent = db_session.query(Agent).filter_by(email="sara@agency.com").one()
    assert agent.role == "admin"

    login = client.post("/api/auth/login", json={"email": "sara@agency.com", "password": "admin-pass"})
    assert login.get_json()["agent"]["role"] == "admin"


def test_create_admin_promotes_existing_agent(app, agent_account):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create-admin", "--name", "Omar", "--email", agent_account["email"],
                                 "--password", "new-secret"])
    assert "Promoted" in result.output
    db_session.remove()
    assert db_session.get(Agent, agent_account["id"]).role == "admin"
