from enum import StrEnum
from typing import NewType
from uuid import UUID

from indexer_service.domain.shared.error import ValidationError

IndexerId = NewType("IndexerId", UUID)


class IndexerStatus(StrEnum):
    """Lifecycle status. Persisted by variant name."""

    CREATED = "Created"
    RUNNING = "Running"
    STOPPED = "Stopped"
    FAILED_RUNNING = "FailedRunning"
    FAILED_STOPPING = "FailedStopping"
    FAILED_STARTING = "FailedStarting"


class IndexerType(StrEnum):
    """Selects the handler that runs an indexer's process."""

    WEBHOOK = "Webhook"


# Every transition the lifecycle service may persist. Anything else is a bug.
TRANSITIONS: dict[IndexerStatus, frozenset[IndexerStatus]] = {
    IndexerStatus.CREATED: frozenset(
        {
            IndexerStatus.RUNNING,
            IndexerStatus.FAILED_RUNNING,
            IndexerStatus.FAILED_STARTING,
        }
    ),
    IndexerStatus.RUNNING: frozenset(
        {
            IndexerStatus.STOPPED,
            IndexerStatus.FAILED_RUNNING,
            IndexerStatus.FAILED_STOPPING,
        }
    ),
    IndexerStatus.STOPPED: frozenset(),
    IndexerStatus.FAILED_RUNNING: frozenset(),
    IndexerStatus.FAILED_STOPPING: frozenset(),
    IndexerStatus.FAILED_STARTING: frozenset(),
}

START_FAILURE_STATUSES = frozenset({IndexerStatus.FAILED_RUNNING, IndexerStatus.FAILED_STARTING})

# process_id is always absent in these statuses and always present in PROCESS_REQUIRED.
# FailedRunning carries one after a crash but not after a failed spawn.
PROCESS_FORBIDDEN = frozenset(
    {IndexerStatus.CREATED, IndexerStatus.STOPPED, IndexerStatus.FAILED_STARTING}
)
PROCESS_REQUIRED = frozenset({IndexerStatus.RUNNING, IndexerStatus.FAILED_STOPPING})


class ControlQueue(StrEnum):
    """Queues carrying indexer ids between the API, the workers and the monitor."""

    START = "start-indexer"
    FAILURE = "failed-indexer"


def parse_indexer_id(raw: str) -> IndexerId:
    """Parse an indexer id from text (queue bodies, path params)."""
    try:
        return IndexerId(UUID(raw.strip()))
    except (ValueError, AttributeError):
        raise ValidationError(f"Invalid indexer id: {raw!r}", field="id") from None


def script_key(indexer_id: IndexerId) -> str:
    """Script Store key for an indexer's uploaded script."""
    return f"scripts/{indexer_id}.js"
