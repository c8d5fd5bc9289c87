"""
Subject Exceptions

Raised when a compute job cannot be mapped back to a cacheable subject.
"""

from reactive_cache.core.exceptions.base import ReactiveCacheError


class SubjectError(ReactiveCacheError):
    """Base exception for subject resolution errors."""
    pass


class SubjectTypeNotFoundError(SubjectError):
    """Raised when a job names a subject type that was never registered."""
    pass


class InvalidJobError(SubjectError):
    """Raised when a queue payload is not a well-formed compute job."""
    pass
