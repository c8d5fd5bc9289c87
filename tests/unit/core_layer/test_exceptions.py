"""
Unit Tests for the Exception Hierarchy
"""

import pytest

from reactive_cache.core.exceptions import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
    ConfigurationError,
    InvalidJobError,
    LeaseError,
    QueueConsumerError,
    QueueError,
    QueueFullError,
    ReactiveCacheError,
    SubjectError,
    SubjectTypeNotFoundError,
)


@pytest.mark.unit
class TestReactiveCacheError:
    """Test the base exception."""

    def test_to_dict(self):
        """Test structured serialization for logging."""
        error = ReactiveCacheError("boom", job_id="job-1", details={"key": "k"})

        assert error.to_dict() == {
            "error_type": "ReactiveCacheError",
            "message": "boom",
            "job_id": "job-1",
            "details": {"key": "k"},
        }

    def test_details_are_copied(self):
        """Test that the caller's details dict is not mutated."""
        details = {"key": "k"}
        ReactiveCacheError("boom", details=details).with_context(extra=1)

        assert details == {"key": "k"}

    def test_with_suggestion_and_context_chain(self):
        """Test that helpers add details and return the same error."""
        error = ReactiveCacheError("boom")

        assert error.with_suggestion("retry").with_context(key="k") is error
        assert error.details == {"suggestion": "retry", "key": "k"}

    def test_repr(self):
        """Test repr includes job id and details when present."""
        assert repr(ReactiveCacheError("boom")) == "ReactiveCacheError(message='boom')"
        assert "job_id='j'" in repr(ReactiveCacheError("boom", job_id="j"))

    def test_from_exception(self):
        """Test wrapping another exception."""
        original = ValueError("bad value")

        error = LeaseError.from_exception(original, key="k")

        assert isinstance(error, LeaseError)
        assert error.message == "bad value"
        assert error.details == {
            "original_error": "ValueError",
            "original_message": "bad value",
            "key": "k",
        }


@pytest.mark.unit
class TestHierarchy:
    """Test that themed exceptions share the expected bases."""

    @pytest.mark.parametrize(
        "cls, base",
        [
            (ConfigurationError, ReactiveCacheError),
            (CacheConnectionError, CacheError),
            (CacheKeyError, CacheError),
            (CacheSerializationError, CacheError),
            (LeaseError, ReactiveCacheError),
            (QueueFullError, QueueError),
            (QueueConsumerError, QueueError),
            (SubjectTypeNotFoundError, SubjectError),
            (InvalidJobError, SubjectError),
            (SubjectError, ReactiveCacheError),
        ],
    )
    def test_subclassing(self, cls, base):
        """Test each exception's base class."""
        assert issubclass(cls, base)

    def test_lease_errors_are_not_cache_errors(self):
        """Test that lease failures are distinguishable from store failures."""
        assert not issubclass(LeaseError, CacheError)
