"""
reactive-cache

Values recomputed in the background only while they are being read.

Usage:
    from reactive_cache import ReactiveCacheConfig, SubjectType, init_reactive_cache

    service = await init_reactive_cache()
    projects = service.register(SubjectType(
        name="project",
        config=ReactiveCacheConfig(key_template=lambda p: ["project", p.id, "stats"]),
        loader=load_project,
        calculate=compute_stats,
    ))

    stats = await projects.read_with_trigger(project, lambda value: value)
"""

from reactive_cache.caching import (
    ComputeJob,
    ReactiveCacheConfig,
    ReactiveCacheController,
    ReactiveCacheService,
    SubjectType,
    close_reactive_cache,
    get_reactive_cache_service,
    init_reactive_cache,
)
from reactive_cache.core.config.constants import ComputeOutcome, ReadState

__version__ = "1.0.0"

__all__ = [
    "ComputeJob",
    "ComputeOutcome",
    "ReactiveCacheConfig",
    "ReactiveCacheController",
    "ReactiveCacheService",
    "ReadState",
    "SubjectType",
    "close_reactive_cache",
    "get_reactive_cache_service",
    "init_reactive_cache",
]
