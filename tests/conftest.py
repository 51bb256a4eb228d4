import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# Tests never talk to a real FalkorDB; keep the fallback DB out of the home directory
os.environ.setdefault("SOCIAL_GRAPH_FALKORDB_ENABLED", "false")
os.environ.setdefault("SOCIAL_GRAPH_FALLBACK_DB_PATH", os.path.join(tempfile.mkdtemp(), "fallback.db"))

# Add src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

from social_graph_service.graph.health import HealthMonitor  # noqa: E402
from social_graph_service.services.directory import UserDirectory  # noqa: E402
from social_graph_service.storage.collection_db import CollectionDB  # noqa: E402
from social_graph_service.storage.flat_store import FlatRelationshipStore  # noqa: E402
from social_graph_service.storage.selector import BackendSelector  # noqa: E402


class StepClock:
    """Deterministic UTC clock advancing one second per call."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
async def db(tmp_path):
    """Fresh fallback collection database per test."""
    database = CollectionDB(str(tmp_path / "fallback.db"))
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
def flat_store(db):
    return FlatRelationshipStore(db)


@pytest.fixture
def fallback_selector(flat_store):
    """Selector with the graph layer disabled: every call hits the flat store."""
    return BackendSelector(HealthMonitor(None), flat_store)


@pytest.fixture
def directory(db):
    return UserDirectory(db)
