"""Shared pytest fixtures for football-data-api tests."""
import os

# Settings are read at import time; pin them before the app is imported.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ["FOOTBALL_API_KEY"] = "test-key"

from typing import Generator
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from football_api.models import Base, League, Team


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    # StaticPool keeps one connection, so the TestClient's worker threads see
    # the same in-memory database as the test.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestSessionLocal()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def sample_league(db_session: Session) -> League:
    """A stored league whose provider id is PL1."""
    league = League(external_ref="PL1", name="Premier League", country="England")
    db_session.add(league)
    db_session.commit()
    return league


@pytest.fixture
def sample_teams(db_session: Session, sample_league: League):
    """Two stored teams of ``sample_league``."""
    teams = [
        Team(league_id=sample_league.id, external_ref="T1", name="Arsenal", stadium_name="Emirates Stadium"),
        Team(league_id=sample_league.id, external_ref="T2", name="Chelsea", stadium_name="Stamford Bridge"),
    ]
    db_session.add_all(teams)
    db_session.commit()
    return teams


@pytest.fixture
def fake_client() -> AsyncMock:
    """
    Stand-in for FootballDataClient.

    Set ``fake_client.fetch_records.return_value`` (or ``side_effect``) to the
    provider records a test needs.
    """
    client = AsyncMock()
    client.fetch_records.return_value = []
    return client


@pytest.fixture
def test_client(db_session: Session, fake_client: AsyncMock):
    """
    Create FastAPI TestClient backed by the test database and the fake provider.

    Note: We don't use context manager (with TestClient) so the lifespan
    (table creation on the configured database, scheduler) does not run.
    Unhandled errors are rendered as responses instead of re-raised.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from football_api.main import app
    from football_api.api.deps import get_orchestrator
    from football_api.core.database import get_db
    from football_api.services.sync.orchestrator import SyncOrchestrator

    def override_get_db():
        yield db_session

    async def override_get_orchestrator():
        yield SyncOrchestrator(db_session, client=fake_client)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_orchestrator] = override_get_orchestrator

    client = TestClient(app, raise_server_exceptions=False)
    yield client

    app.dependency_overrides.clear()
