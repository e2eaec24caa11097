"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

# Line 5 starts at offset 74 with LF terminators
SAMPLE_FINDBUGS = """// Findbugs demo.
class Findbugs {
  constructor(x) {
    // assign field
    this.x = x
  }
}
"""


class FakeClock:
    """Deterministic clock; each call advances by one second."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture
def sample_findbugs():
    """JavaScript sample with a field assignment on line 5."""
    return SAMPLE_FINDBUGS


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    """Settings isolated from the environment."""
    from findingsync.config import Settings

    return Settings(_env_file=None, database_url="sqlite://", worker_concurrency=2)


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory database."""
    from findingsync.database import create_db_engine, create_session_factory, init_db

    engine = create_db_engine("sqlite://", echo=False)
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    from findingsync.services.annotation_store import AnnotationStore

    return AnnotationStore(session_factory)


@pytest.fixture
def workspace(tmp_path):
    from findingsync.services.workspace import Workspace

    return Workspace(tmp_path)


@pytest.fixture
def events(store):
    """Change events received by a listener on the store."""
    received = []
    store.add_listener(received.append)
    return received
