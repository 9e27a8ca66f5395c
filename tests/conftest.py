"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from mnemo.db.item_store import SqlItemStore  # noqa: E402
from mnemo.delivery.reading import ReadingPipeline  # noqa: E402
from mnemo.delivery.scheduler import Scheduler  # noqa: E402
from mnemo.delivery.topics import TopicService  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (in-memory database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """A fixed, timezone-aware starting time."""
    return datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def store():
    """Fresh in-memory item store."""
    store = SqlItemStore.from_url("sqlite://")
    yield store
    store.close()


@pytest.fixture
def scheduler(store):
    return Scheduler(store)


@pytest.fixture
def reading(scheduler):
    return ReadingPipeline(scheduler)


@pytest.fixture
def topics(scheduler):
    return TopicService(scheduler.store, scheduler.topics)


@pytest.fixture
def sample_item(scheduler, now):
    """An activated card, due at `now`."""
    item = scheduler.create_item("What is the OSI model?", "A 7-layer reference model", now=now)
    return scheduler.activate(item.id, now)
