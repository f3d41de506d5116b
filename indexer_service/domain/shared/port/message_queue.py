"""MessageQueue port - at-least-once delivery channel for control messages."""

from abc import abstractmethod
from typing import Protocol

from indexer_service.domain.shared.model.value import ValueObject
from indexer_service.domain.shared.port import Port


class QueueMessage(ValueObject):
    """A received message.

    Attributes:
        id: Stable message identifier assigned on send.
        queue: Name of the queue the message was received from.
        body: Message payload as text.
        receipt: Handle for this delivery; required to acknowledge it.
        receive_count: Number of times the message has been delivered, this one included.
    """

    id: str
    queue: str
    body: str
    receipt: str
    receive_count: int = 1


class MessageQueue(Port, Protocol):
    """Durable queue with visibility-timeout redelivery.

    A received message stays invisible to other consumers for the visibility
    timeout. If it is not deleted before the timeout elapses it is delivered
    again; the adapter dead-letters messages that exceed its redelivery limit.
    All methods raise QueueError on transport failure.
    """

    @abstractmethod
    async def send(self, queue: str, body: str) -> str:
        """Enqueue a message and return its id."""
        ...

    @abstractmethod
    async def receive(
        self, queue: str, visibility_timeout: float | None = None
    ) -> QueueMessage | None:
        """Receive the oldest visible message, or None if the queue is empty."""
        ...

    @abstractmethod
    async def delete(self, queue: str, message: QueueMessage) -> None:
        """Acknowledge a message so it is never delivered again."""
        ...

    @abstractmethod
    async def purge(self, queue: str) -> int:
        """Remove every message from the queue. Returns the number removed."""
        ...
