"""
Value Store and Lease Manager Protocols

Abstract protocols for the two key-value collaborators of the reactive cache,
enabling dependency injection and testability.

Architectural Decision: Protocol-based abstraction
- The controller only depends on these narrow interfaces
- Facilitates testing with in-memory implementations
- Runtime checking with @runtime_checkable
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ValueBackend(Protocol):
    """
    Key-value store with optional per-entry expiry.

    Implementations:
    - ValueStore: Redis-backed store with JSON encoding
    - In-memory fakes in the test suite
    """

    async def read(self, key: str) -> Any | None:
        """
        Read a value.

        Returns:
            The stored value, or None when absent or expired

        Raises:
            CacheError: If the store cannot be reached
        """
        ...

    async def write(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Write a value, optionally expiring after ``ttl`` seconds.

        Raises:
            CacheError: If the store cannot be reached
        """
        ...

    async def delete(self, *keys: str) -> int:
        """
        Delete keys.

        Returns:
            Number of keys removed
        """
        ...


@runtime_checkable
class LeaseManager(Protocol):
    """
    Distributed mutual exclusion with automatic expiry.

    Acquisition is atomic across all callers sharing the store.
    """

    async def try_obtain(self, key: str, timeout: float) -> str | None:
        """
        Try to take the lease without waiting.

        Returns:
            A token when obtained, None when someone else holds it

        Raises:
            LeaseError: If the manager cannot be reached
        """
        ...

    async def cancel(self, key: str, token: str) -> bool:
        """
        Release the lease if ``token`` still owns it.

        Returns:
            True if the lease was released by this call
        """
        ...
