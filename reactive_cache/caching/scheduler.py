"""
Compute job scheduling.

A ComputeJob names one subject ("run the compute cycle for project 42"). The
scheduler submits jobs to the job queue either for immediate delivery or
after a delay. Delivery is at-least-once; compute cycles tolerate duplicates.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from reactive_cache.caching.subject import subject_id
from reactive_cache.core.exceptions import InvalidJobError
from reactive_cache.core.interfaces.message_queue import MessageQueue
from reactive_cache.core.logging.logger import get_logger
from reactive_cache.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)


@dataclass(frozen=True)
class ComputeJob:
    """One unit of work for the worker pool."""

    subject_type: str
    subject_id: str
    job_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    enqueued_at: float = field(default_factory=time.time)

    def to_payload(self) -> dict[str, Any]:
        return {
            "subject_type": self.subject_type,
            "subject_id": self.subject_id,
            "job_id": self.job_id,
            "enqueued_at": self.enqueued_at,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ComputeJob":
        """
        Rebuild a job from a queue payload.

        Raises:
            InvalidJobError: If required fields are missing or malformed
        """
        try:
            subject_type = payload["subject_type"]
            raw_id = payload["subject_id"]
        except (KeyError, TypeError) as e:
            raise InvalidJobError(
                f"Compute job is missing a required field: {e}",
                details={"payload": repr(payload)},
            ) from e

        if not subject_type or raw_id is None or raw_id == "":
            raise InvalidJobError(
                "Compute job has an empty subject_type or subject_id",
                details={"payload": repr(payload)},
            )

        job_id = str(payload.get("job_id") or uuid.uuid4())
        try:
            enqueued_at = float(payload.get("enqueued_at") or time.time())
        except (TypeError, ValueError) as e:
            raise InvalidJobError(
                "Compute job has a malformed enqueued_at", job_id=job_id,
                details={"enqueued_at": repr(payload.get("enqueued_at"))},
            ) from e

        return cls(
            subject_type=str(subject_type),
            subject_id=str(raw_id),
            job_id=job_id,
            enqueued_at=enqueued_at,
        )


class ComputeScheduler:
    """
    Submits compute jobs to a MessageQueue.

    Usage:
        scheduler = ComputeScheduler(queue)
        await scheduler.enqueue_now("project", project)
        await scheduler.enqueue_after(60, "project", project)
    """

    def __init__(self, queue: MessageQueue, metrics_collector=None):
        self._queue = queue
        self._metrics = metrics_collector or get_metrics_collector()

    async def enqueue_now(self, subject_type: str, subject: Any) -> str:
        """
        Queue a compute cycle for immediate delivery.

        Returns:
            Message ID assigned by the queue
        """
        job = ComputeJob(subject_type=subject_type, subject_id=subject_id(subject))
        message_id = await self._queue.produce(job.to_payload())

        self._metrics.record_job_enqueued(subject_type, "now")
        logger.debug(
            "Compute job enqueued",
            stage="SCHEDULE.NOW",
            subject_type=subject_type,
            subject_id=job.subject_id,
            message_id=message_id,
        )
        return message_id

    async def enqueue_after(self, delay: float, subject_type: str, subject: Any) -> str:
        """
        Queue a compute cycle for delivery after ``delay`` seconds.

        Returns:
            Token of the delayed job
        """
        job = ComputeJob(subject_type=subject_type, subject_id=subject_id(subject))
        token = await self._queue.produce_delayed(job.to_payload(), delay)

        self._metrics.record_job_enqueued(subject_type, "delayed")
        logger.debug(
            "Compute job scheduled",
            stage="SCHEDULE.AFTER",
            subject_type=subject_type,
            subject_id=job.subject_id,
            delay=delay,
        )
        return token
