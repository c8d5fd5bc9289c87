"""
Exception Module

Structured exception hierarchy for the reactive cache, organized by theme.

Module Structure:
-----------------
- **base.py**: ReactiveCacheError base class + ConfigurationError
- **cache.py**: Redis / value store exceptions
- **lease.py**: Lease manager exceptions
- **queue.py**: Job queue exceptions
- **subject.py**: Subject registry and job payload exceptions

Usage:
------
```python
from reactive_cache.core.exceptions import CacheKeyError, LeaseError
```
"""

from reactive_cache.core.exceptions.base import ConfigurationError, ReactiveCacheError
from reactive_cache.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
)
from reactive_cache.core.exceptions.lease import LeaseError
from reactive_cache.core.exceptions.queue import QueueConsumerError, QueueError, QueueFullError
from reactive_cache.core.exceptions.subject import (
    InvalidJobError,
    SubjectError,
    SubjectTypeNotFoundError,
)

__all__ = [
    # Base
    "ReactiveCacheError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    # Lease
    "LeaseError",
    # Queue
    "QueueError",
    "QueueFullError",
    "QueueConsumerError",
    # Subject
    "SubjectError",
    "SubjectTypeNotFoundError",
    "InvalidJobError",
]
