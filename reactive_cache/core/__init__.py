"""
Core Module

Foundational components: configuration, logging, exceptions and interfaces.
"""

from .exceptions import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
    ConfigurationError,
    InvalidJobError,
    LeaseError,
    QueueError,
    QueueFullError,
    ReactiveCacheError,
    SubjectTypeNotFoundError,
)
from .logging import (
    clear_job_id,
    get_job_id,
    get_logger,
    log_stage,
    set_job_id,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_job_id",
    "get_job_id",
    "clear_job_id",
    "log_stage",
    "ReactiveCacheError",
    "ConfigurationError",
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    "LeaseError",
    "QueueError",
    "QueueFullError",
    "SubjectTypeNotFoundError",
    "InvalidJobError",
]
