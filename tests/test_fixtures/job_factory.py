"""
Job Factory for Test Data

Creates compute job payloads and queue messages for worker tests.
"""

from typing import Any

from reactive_cache.caching.scheduler import ComputeJob
from reactive_cache.core.interfaces.message_queue import QueueMessage


class JobFactory:
    """Factory for creating compute jobs and the messages that carry them."""

    @staticmethod
    def job(subject_type: str = "project", subject_id: str = "1") -> ComputeJob:
        """Create a valid compute job."""
        return ComputeJob(subject_type=subject_type, subject_id=subject_id, job_id=f"job-{subject_id}")

    @staticmethod
    def message(
        subject_type: str = "project", subject_id: str = "1", msg_id: str = "1-0"
    ) -> QueueMessage:
        """Create a queue message carrying a valid job."""
        payload = JobFactory.job(subject_type, subject_id).to_payload()
        return QueueMessage(id=msg_id, payload=payload, timestamp="2024-01-01T00:00:00Z")

    @staticmethod
    def raw_message(payload: dict[str, Any], msg_id: str = "1-0") -> QueueMessage:
        """Create a queue message with an arbitrary payload."""
        return QueueMessage(id=msg_id, payload=payload, timestamp="")

    @staticmethod
    def batch(count: int = 3, subject_type: str = "project") -> list[QueueMessage]:
        """Create messages for subjects 1..count."""
        return [
            JobFactory.message(subject_type, str(i), msg_id=f"{i}-0")
            for i in range(1, count + 1)
        ]
