"""Pytest configuration and shared fixtures for DocuTrack tests.

- Isolated in-memory key-value store per test
- Deterministic clock (one minute per tick) and sequential document ids
- One user per office used in the routing scenarios
"""

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from docutrack.config import Settings
from docutrack.main import create_app
from docutrack.models.document import DocumentFields
from docutrack.models.office import Office, Status
from docutrack.models.user import User
from docutrack.repositories import DocumentRepository, SessionRepository, SqliteKeyValueStore, UserRepository
from docutrack.services.bulk_coordinator import BulkOperationCoordinator
from docutrack.services.event_bus import EventBus
from docutrack.services.identity_service import IdentityService
from docutrack.services.routing_engine import RoutingEngine


class SteppingClock:
    """Returns a strictly increasing timestamp on every call."""

    def __init__(self, start=None, step=timedelta(minutes=1)):
        self.current = start or datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        self.current = self.current + self.step
        return self.current


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def id_factory():
    counter = count(1)
    return lambda: f"doc-{next(counter)}"


@pytest.fixture
def store():
    kv = SqliteKeyValueStore(db_path=":memory:")
    yield kv
    kv.close()


@pytest.fixture
def document_repository(store):
    return DocumentRepository(store)


@pytest.fixture
def user_repository(store):
    return UserRepository(store)


@pytest.fixture
def session_repository(store):
    return SessionRepository(store)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def engine(document_repository, event_bus, clock, id_factory):
    return RoutingEngine(document_repository, event_bus=event_bus, clock=clock, id_factory=id_factory)


@pytest.fixture
def coordinator(engine):
    return BulkOperationCoordinator(engine)


@pytest.fixture
def identity(user_repository, session_repository):
    return IdentityService(user_repository, session_repository)


@pytest.fixture
def fou_user():
    return User(id="u-fou", name="Fay", office=Office.FOU, credential="fou-pass")


@pytest.fixture
def odm_user():
    return User(id="u-odm", name="Oscar", office=Office.ODM, credential="odm-pass")


@pytest.fixture
def property_user():
    return User(id="u-prop", name="Priya", office=Office.PROPERTY_UNIT, credential="prop-pass")


@pytest.fixture
def admin_user():
    return User(id="admin-user", name="Admin", office=Office.ADMIN, credential="admin")


@pytest.fixture
def fields():
    return DocumentFields(title="Budget Memo", status=Status.IN_REVIEW, content="Q3 budget request")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        db_path=str(tmp_path / "docutrack.db"),
        slip_dir=str(tmp_path / "slips"),
        gemini_api_key=None,
    )


@pytest.fixture
def app(settings, clock, id_factory):
    application = create_app(settings, clock=clock, id_factory=id_factory)
    yield application
    application.close()
