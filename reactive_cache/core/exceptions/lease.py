"""
Lease Exceptions

A lease that is merely held by someone else is not an error; these are raised
only when the lease manager itself cannot be reached.
"""

from reactive_cache.core.exceptions.base import ReactiveCacheError


class LeaseError(ReactiveCacheError):
    """
    Raised when a lease operation fails to execute.

    Common causes:
    - Redis unavailable while obtaining or cancelling a lease
    - Script execution failure
    """
    pass
