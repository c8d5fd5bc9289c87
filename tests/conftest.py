"""
Pytest Configuration and Shared Test Fixtures

All fixtures defined here are automatically available to all test files.
Collaborators are in-memory fakes sharing one ManualClock.
"""

import os
import sys
from unittest.mock import MagicMock

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from reactive_cache.caching.controller import ReactiveCacheController  # noqa: E402
from reactive_cache.caching.lease_guard import LeaseGuard  # noqa: E402
from reactive_cache.caching.scheduler import ComputeScheduler  # noqa: E402
from reactive_cache.caching.subject import ReactiveCacheConfig, SubjectType  # noqa: E402
from reactive_cache.infrastructure.monitoring.metrics_collector import MetricsCollector  # noqa: E402
from tests.test_fixtures.fakes import (  # noqa: E402
    FakeRedisClient,
    InMemoryLeaseManager,
    InMemoryStore,
    ManualClock,
    Project,
    RecordingQueue,
)


# ============================================================================
# Environment
# ============================================================================


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    """Fresh settings per test, independent of any local .env."""
    from reactive_cache.core.config import settings as settings_module

    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setattr(settings_module, "_settings", None)
    yield
    settings_module._settings = None


# ============================================================================
# Mock Infrastructure Fixtures
# ============================================================================


@pytest.fixture
def mock_metrics():
    """MetricsCollector stand-in that records calls without touching Prometheus."""
    return MagicMock(spec=MetricsCollector)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def fake_redis(clock):
    return FakeRedisClient(clock)


@pytest.fixture
def store(clock):
    return InMemoryStore(clock)


@pytest.fixture
def leases(clock):
    return InMemoryLeaseManager(clock)


@pytest.fixture
def queue():
    return RecordingQueue()


@pytest.fixture
def scheduler(queue, mock_metrics):
    return ComputeScheduler(queue, metrics_collector=mock_metrics)


# ============================================================================
# Subject Fixtures
# ============================================================================


@pytest.fixture
def calculations():
    """Values handed out by the project calculation, in order."""
    return []


@pytest.fixture
def project_type(calculations):
    """
    Subject type "project": lifetime 10m, refresh 1m, lease 2m.

    Each calculation returns the next "V<n>" string.
    """
    projects = {1: Project(1), 2: Project(2)}

    async def load(subject_id):
        return projects.get(int(subject_id))

    async def calculate(project):
        calculations.append(project.id)
        return f"V{len(calculations)}"

    return SubjectType(
        name="project",
        config=ReactiveCacheConfig(
            key_template=lambda p: ["project", p.id, "stats"],
            lease_timeout=120,
            refresh_interval=60,
            lifetime=600,
        ),
        loader=load,
        calculate=calculate,
    )


@pytest.fixture
def controller(project_type, store, leases, scheduler, mock_metrics):
    return ReactiveCacheController(
        project_type,
        store=store,
        lease_guard=LeaseGuard(leases),
        scheduler=scheduler,
        metrics_collector=mock_metrics,
    )


@pytest.fixture
def project():
    return Project(1)
