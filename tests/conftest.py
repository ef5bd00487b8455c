"""
Pytest fixtures for the scheduling engine.

Provides:
- In-memory SQLite database with the schema created per test
- Seed helpers (see factories.py)
- A standard clinic: Mon-Fri 09:00-18:00, tenant default weekends off
- FastAPI TestClient with get_db bound to the test database
"""

import os

# Keep the app modules from touching a real database during import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db

from .factories import Seeder


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def clinic(seed):
    """
    Tenant with one professional working Mon-Fri 09:00-18:00.

    Weekends come from tenant default rules marked as non-working days.
    """
    tenant = seed.tenant()
    profile = seed.profile(tenant)
    lead = seed.lead(tenant)
    for weekday in range(1, 6):
        seed.rule(tenant, weekday, "09:00", "18:00", profile=profile)
    seed.rule(tenant, 6, "09:00", "13:00", is_working_day=False)
    seed.rule(tenant, 0, "09:00", "13:00", is_working_day=False)
    return SimpleNamespace(tenant=tenant, profile=profile, lead=lead)


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient

    from app.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
