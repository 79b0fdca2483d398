import re

from extensions import SessionLocal, init_db
from models import Agent, Booking

DUMMY_PATTERNS = [re.compile(p, re.IGNORECASE) for p in ("test", "dummy", "sample", "example", "fake", "demo")]


def is_dummy(agent):
    return any(p.search(agent.name or "") or p.search(agent.email or "") for p in DUMMY_PATTERNS)


def clean_database():
    init_db()
    session = SessionLocal()

    try:
        agents = session.query(Agent).order_by(Agent.created_at).all()
        print(f"Found {len(agents)} agents in database:")
        for i, agent in enumerate(agents, start=1):
            print(f"{i}. {agent.name} ({agent.email}) - Role: {agent.role} - Created: {agent.created_at}")

        dummy_agents = [a for a in agents if is_dummy(a)]
        if dummy_agents:
            print(f"\nDeleting {len(dummy_agents)} dummy/test agents:")
            for agent in dummy_agents:
                print(f"   - {agent.name} ({agent.email})")
                for booking in agent.bookings:
                    booking.agent_id = None
                session.delete(agent)
            session.commit()
        else:
            print("\nNo dummy data found in agents table")

        bookings_count = session.query(Booking).count()
        print(f"\nFound {bookings_count} bookings in database")
        for i, booking in enumerate(session.query(Booking).limit(5).all(), start=1):
            print(f"{i}. {booking.customer_name} - {booking.package} - {booking.status}")

        print("\nSummary:")
        print(f"   - Total Agents: {len(agents) - len(dummy_agents)}")
        print(f"   - Total Bookings: {bookings_count}")

    except Exception as e:
        session.rollback()
        print(f"Error: {e}")
    finally:
        session.close()


if __name__ == "__main__":
    clean_database()
