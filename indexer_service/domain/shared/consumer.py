"""Queue consumers, scheduled tasks, and worker state."""

from abc import ABC, ABCMeta, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, dataclass_transform

from indexer_service.domain.shared.port.message_queue import QueueMessage

# --- Worker Infrastructure ---


@dataclass(frozen=True)
class WorkerConfig:
    """Configuration for a single worker instance.

    Attributes:
        name: Unique worker identifier.
        queue: Queue to receive from.
        poll_interval: Seconds between polls when idle (default: 0.5).
        visibility_timeout: Seconds a received message stays hidden (default: 30.0).
    """

    name: str
    queue: str
    poll_interval: float = 0.5
    visibility_timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.queue:
            raise ValueError("queue must not be empty")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        if self.visibility_timeout <= 0:
            raise ValueError("visibility_timeout must be > 0")


class WorkerStatus(Enum):
    """Status of a running worker."""

    IDLE = "idle"
    RECEIVING = "receiving"
    PROCESSING = "processing"
    STOPPING = "stopping"


@dataclass
class WorkerState:
    """Runtime state for a running worker (not persisted).

    Attributes:
        config: Worker configuration.
        status: Current worker status.
        current_message: Message currently being processed.
        last_receive_at: When the last message was received.
        processed_count: Messages acknowledged after successful handling.
        discarded_count: Messages acknowledged without effect (stale or duplicate).
        failed_count: Messages left for redelivery after an error.
        error: Last error if any.
    """

    config: WorkerConfig
    status: WorkerStatus = WorkerStatus.IDLE
    current_message: QueueMessage | None = None
    last_receive_at: datetime | None = None
    processed_count: int = 0
    discarded_count: int = 0
    failed_count: int = 0
    error: Exception | None = None


# --- QueueConsumer ---


@dataclass_transform()
class _QueueConsumerMeta(ABCMeta):
    """Metaclass that applies @dataclass to concrete QueueConsumer subclasses."""

    def __new__(mcs, name: str, bases: tuple[type, ...], namespace: dict[str, Any]) -> type:
        cls = super().__new__(mcs, name, bases, namespace)
        if any(isinstance(b, mcs) for b in bases):
            cls = dataclass(cls)
        return cls


class QueueConsumer(metaclass=_QueueConsumerMeta):
    """Base class for pull-based queue consumers.

    Workers receive messages from ``__queue__`` and delegate to ``handle``.
    The worker acknowledges the message when ``handle`` returns, discards it
    when ``handle`` raises a DomainError, and leaves it for redelivery on any
    other error.

    Subclasses are automatically dataclasses with DI-injected dependencies.

    Configuration is via class variables:
        __queue__: Queue name to consume (required)
        __concurrency__: Parallel workers for this consumer (default: 1)
        __poll_interval__: Seconds between polls when idle (default: 0.5)

    Example:
        class FailIndexerConsumer(QueueConsumer):
            __queue__ = ControlQueue.FAILURE

            handler: FailIndexerHandler

            async def handle(self, message: QueueMessage) -> None:
                await self.handler.run(FailIndexer(id=parse_indexer_id(message.body)))
    """

    __queue__: ClassVar[str]
    __concurrency__: ClassVar[int] = 1
    __poll_interval__: ClassVar[float] = 0.5

    @abstractmethod
    async def handle(self, message: QueueMessage) -> None:
        """Handle a single message."""
        ...


# --- Schedule ---


@dataclass
class Schedule(ABC):
    """Base class for scheduled tasks.

    Subclasses are dataclasses with DI-injected dependencies.
    The interval is provided via config, not on the class.
    """

    @abstractmethod
    async def run(self, **params: Any) -> None:
        """Run the scheduled task with parameters from config."""
        ...

