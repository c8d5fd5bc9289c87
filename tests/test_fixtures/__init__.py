"""
Test Fixtures Package

Shared test utilities and in-memory collaborators.
"""

from .fakes import (
    FakeRedisClient,
    InMemoryLeaseManager,
    InMemoryStore,
    ManualClock,
    Project,
    RecordingQueue,
)
from .job_factory import JobFactory

__all__ = [
    "FakeRedisClient",
    "InMemoryLeaseManager",
    "InMemoryStore",
    "JobFactory",
    "ManualClock",
    "Project",
    "RecordingQueue",
]
