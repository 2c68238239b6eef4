"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database with the schema created per test
- Fixed reference clock
- Request and configuration factories
- Scriptable equivalence oracle
- Repository and service instances bound to the test session
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator, List, Optional

import pytest
from sqlalchemy.orm import Session

from bookly.core.database import DatabaseManager
from bookly.models.base import ReassignmentReason, UserPriority
from bookly.models.reassignment import ReassignmentConfiguration, ReassignmentRequest
from bookly.repositories.reassignment import (
    ReassignmentConfigurationRepository,
    ReassignmentRequestRepository,
)
from bookly.schemas.reassignment import EquivalenceQuery, EquivalentResource
from bookly.services.reassignment import EquivalenceOracle, ReassignmentService


NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# Clock
# =============================================================================

@pytest.fixture
def now() -> datetime:
    """Reference time shared by a test and the code under test."""
    return NOW


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def database() -> Generator[DatabaseManager, None, None]:
    """Fresh in-memory database with every table created."""
    manager = DatabaseManager("sqlite://", echo=False)
    manager.create_all()
    yield manager
    manager.drop_all()
    manager.close()


@pytest.fixture(scope="function")
def db(database: DatabaseManager) -> Generator[Session, None, None]:
    """Session on the test database, closed after the test."""
    session = database.get_session()
    yield session
    session.close()


# =============================================================================
# Oracle
# =============================================================================

class ScriptedOracle(EquivalenceOracle):
    """Oracle returning preset candidates and recording every query."""

    def __init__(self, candidates: Optional[List[EquivalentResource]] = None):
        self.candidates = list(candidates or [])
        self.queries: List[EquivalenceQuery] = []
        self.error: Optional[Exception] = None

    @property
    def oracle_name(self) -> str:
        return "scripted"

    def find_equivalents(self, query: EquivalenceQuery) -> List[EquivalentResource]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return list(self.candidates)


@pytest.fixture
def oracle() -> ScriptedOracle:
    return ScriptedOracle()


# =============================================================================
# Repositories & Services
# =============================================================================

@pytest.fixture
def request_repository(db: Session) -> ReassignmentRequestRepository:
    return ReassignmentRequestRepository(db)


@pytest.fixture
def configuration_repository(db: Session) -> ReassignmentConfigurationRepository:
    return ReassignmentConfigurationRepository(db)


@pytest.fixture
def service(db: Session, oracle: ScriptedOracle) -> ReassignmentService:
    return ReassignmentService.from_session(db, oracle=oracle)


# =============================================================================
# Factories
# =============================================================================

def build_request(now: datetime = NOW, **overrides) -> ReassignmentRequest:
    """Unpersisted pending request with a booking window the next day."""
    values = {
        "original_reservation_id": "reservation-1",
        "requested_by": "user-1",
        "reason": ReassignmentReason.MAINTENANCE,
        "original_resource_id": "room-101",
        "original_start_time": now + timedelta(days=1),
        "original_end_time": now + timedelta(days=1, hours=2),
        "priority": UserPriority.STUDENT,
        "response_deadline": now + timedelta(hours=24),
    }
    values.update(overrides)
    return ReassignmentRequest.create(now=now, **values)


@pytest.fixture
def draft_request(now: datetime) -> Callable[..., ReassignmentRequest]:
    """Build an unpersisted request from defaults plus overrides."""

    def factory(**overrides) -> ReassignmentRequest:
        return build_request(now, **overrides)

    return factory


@pytest.fixture
def make_request(
    request_repository: ReassignmentRequestRepository,
    now: datetime,
) -> Callable[..., ReassignmentRequest]:
    """Persist a request built from defaults plus overrides."""

    def factory(created_at: Optional[datetime] = None, **overrides) -> ReassignmentRequest:
        request = build_request(created_at or now, **overrides)
        return request_repository.create(request)

    return factory


@pytest.fixture
def make_configuration(
    configuration_repository: ReassignmentConfigurationRepository,
    now: datetime,
) -> Callable[..., ReassignmentConfiguration]:
    """Persist a configuration with the given overrides."""

    def factory(**overrides) -> ReassignmentConfiguration:
        configuration = ReassignmentConfiguration.create(now=now, **overrides)
        return configuration_repository.save(configuration, now=now)

    return factory
