"""
Message Queue Exceptions

All exceptions related to the compute job queue.
"""

from reactive_cache.core.exceptions.base import ReactiveCacheError


class QueueError(ReactiveCacheError):
    """Base exception for message queue errors."""
    pass


class QueueFullError(QueueError):
    """
    Raised when queue is full (backpressure).

    Producers retry with exponential backoff before this surfaces.
    """
    pass


class QueueConsumerError(QueueError):
    """
    Raised when queue consumer encounters an error.

    Common causes:
    - Consumer group missing
    - Connection to queue lost
    """
    pass
