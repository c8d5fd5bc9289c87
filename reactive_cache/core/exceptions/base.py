"""
Base Exception Class

This module contains ONLY the base exception class that all other exceptions
inherit from. Specialized exceptions live in their themed modules.
"""

from typing import Any


class ReactiveCacheError(Exception):
    """
    Base exception for all reactive cache errors.

    All custom exceptions inherit from this class to enable:
    - Consistent error handling
    - Job ID correlation with worker logs
    - Structured error logging

    Attributes:
        message: Error message
        job_id: ID of the compute job being processed (if any)
        details: Additional error details (dict)

    Example:
        raise LeaseError(
            "Failed to obtain lease",
            details={"key": "exclusive_lease:project:1"}
        )
    """

    def __init__(
        self, message: str, job_id: str | None = None, details: dict[str, Any] | None = None
    ):
        self.message = message
        self.job_id = job_id
        self.details = (details or {}).copy()
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for logging.

        Returns:
            Dict with error_type, message, job_id, and details
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "job_id": self.job_id,
            "details": self.details,
        }

    def with_suggestion(self, suggestion: str) -> "ReactiveCacheError":
        """Add a suggestion to help operators fix the error."""
        self.details["suggestion"] = suggestion
        return self

    def with_context(self, **context) -> "ReactiveCacheError":
        """Add additional context to the error details."""
        self.details.update(context)
        return self

    def __repr__(self) -> str:
        details_str = f", details={self.details}" if self.details else ""
        job_id_str = f", job_id='{self.job_id}'" if self.job_id else ""
        return f"{self.__class__.__name__}(message='{self.message}'{job_id_str}{details_str})"

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        message: str | None = None,
        job_id: str | None = None,
        **details
    ) -> "ReactiveCacheError":
        """
        Create an error of this class from another exception.

        Useful for wrapping redis-py exceptions with additional context.

        Example:
            >>> try:
            ...     await client.set(key, token, nx=True, px=timeout_ms)
            ... except RedisError as e:
            ...     raise LeaseError.from_exception(e, key=key) from e
        """
        error_message = message or str(exc)
        error_details = {
            "original_error": exc.__class__.__name__,
            "original_message": str(exc),
            **details
        }
        return cls(error_message, job_id=job_id, details=error_details)


class ConfigurationError(ReactiveCacheError):
    """Raised when configuration is invalid or missing."""
    pass
