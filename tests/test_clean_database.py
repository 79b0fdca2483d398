"""Tests for the dummy-data cleanup script."""

from datetime import date

from clean_database import clean_database, is_dummy
from extensions import db_session
from models import Agent, Booking


def _agent(name, email):
    agent = Agent(name=name, email=email, role="agent")
    agent.set_password("secret1")
    db_session.add(agent)
    return agent


def test_is_dummy():
    assert is_dummy(Agent(name="Test Agent", email="ops@agency.com"))
    assert is_dummy(Agent(name="Omar", email="demo.user@agency.com"))
    assert not is_dummy(Agent(name="Omar Farooq", email="omar@agency.com"))


def test_clean_database_removes_dummy_agents(capsys):
    real = _agent("Omar Farooq", "omar@agency.com")
    fake = _agent("Sample Agent", "sample@agency.com")
    db_session.flush()
    db_session.add(Booking(customer_name="A. Khan", customer_email="a@x.com", package="Umrah 10D",
                           travel_date=date(2024, 5, 1), agent_id=fake.id))
    db_session.commit()
    real_id = real.id
    db_session.remove()

    clean_database()

    output = capsys.readouterr().out
    assert "Found 2 agents in database:" in output
    assert "Deleting 1 dummy/test agents:" in output
    assert "Total Agents: 1" in output
    assert "Total Bookings: 1" in output

    assert [a.id for a in db_session.query(Agent).all()] == [real_id]
    booking = db_session.query(Booking).one()
    assert booking.agent_id is None


def test_clean_database_without_dummies(capsys):
    _agent("Omar Farooq", "omar@agency.com")
    db_session.commit()
    db_session.remove()

    clean_database()

    assert "No dummy data found in agents table" in capsys.readouterr().out
