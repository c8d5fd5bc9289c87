"""
Caching Module

The reactive caching mechanism: values recomputed in the background only
while they are being read.

Components:
-----------
- **subject.py**: SubjectType and its immutable ReactiveCacheConfig
- **key_resolver.py**: base and qualified cache keys
- **liveness.py**: TTL-backed "alive" marker
- **lease_guard.py**: single-flight execution under an exclusive lease
- **scheduler.py**: ComputeJob and ComputeScheduler
- **controller.py**: read_with_trigger / compute_cycle / clear
- **registry.py**: subject type name -> controller
- **service.py**: Redis wiring and global service
"""

from .controller import ReactiveCacheController, is_present
from .key_resolver import KeyResolver
from .lease_guard import LeaseGuard
from .liveness import LivenessTracker
from .registry import SubjectRegistry
from .scheduler import ComputeJob, ComputeScheduler
from .service import (
    ReactiveCacheService,
    close_reactive_cache,
    get_reactive_cache_service,
    init_reactive_cache,
)
from .subject import ReactiveCacheConfig, SubjectType, subject_id

__all__ = [
    "ComputeJob",
    "ComputeScheduler",
    "KeyResolver",
    "LeaseGuard",
    "LivenessTracker",
    "ReactiveCacheConfig",
    "ReactiveCacheController",
    "ReactiveCacheService",
    "SubjectRegistry",
    "SubjectType",
    "close_reactive_cache",
    "get_reactive_cache_service",
    "init_reactive_cache",
    "is_present",
    "subject_id",
]
