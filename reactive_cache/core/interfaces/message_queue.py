"""
Message Queue Interface

Abstract base class for job queue implementations used to schedule compute
cycles immediately or after a delay.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class QueueMessage:
    """
    Represents a message in the queue.
    """
    id: str
    payload: dict[str, Any]
    timestamp: str


class MessageQueue(ABC):
    """
    Abstract base class for message queue implementations.

    Delivery is at-least-once: a message is redelivered until acknowledged.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize connection to the queue."""
        pass

    @abstractmethod
    async def produce(self, payload: dict[str, Any]) -> str:
        """
        Produce a message for immediate delivery.

        Returns:
            Message ID
        """
        pass

    @abstractmethod
    async def produce_delayed(self, payload: dict[str, Any], delay: float) -> str:
        """
        Produce a message that becomes deliverable after ``delay`` seconds.

        Returns:
            Token identifying the delayed job
        """
        pass

    @abstractmethod
    async def consume(
        self, consumer_name: str, batch_size: int = 10, block_ms: int = 2000
    ) -> list[QueueMessage]:
        """
        Consume messages from the queue.

        Returns:
            List of messages
        """
        pass

    @abstractmethod
    async def acknowledge(self, message_id: str) -> None:
        """Acknowledge a processed message."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection."""
        pass
