"""
SQLAlchemy 2.x session management for the back-office API.
"""

import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session

import config
from models import Base

if config.DATABASE_URL == config.DEFAULT_DATABASE_URL:
    os.makedirs(config.INSTANCE_DIR, exist_ok=True)

# SQLite connections are handed across threads by the scoped session
_connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(config.DATABASE_URL, echo=False, connect_args=_connect_args)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Scoped session for thread safety
db_session = scoped_session(SessionLocal)


def init_db():
    """Initialize the database by creating all tables."""
    Base.metadata.create_all(bind=engine)


def drop_db():
    """Drop every table. Used by the test suite."""
    Base.metadata.drop_all(bind=engine)


def get_db():
    """Get a database session (for scripts outside a request)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
