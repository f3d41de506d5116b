"""Error hierarchy for the indexer service.

Error layers:
- IndexerServiceError: Base class for all service errors
- DomainError: Missing entities, illegal lifecycle transitions, bad input (4xx responses)
- InfrastructureError: Persistence, process, queue and configuration failures (500 responses)

These errors are mapped to HTTP responses by the global exception handler in app.py.
"""


class IndexerServiceError(Exception):
    """Base class for all indexer service errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# =============================================================================
# Domain Errors (never retried - typically 4xx)
# =============================================================================


class DomainError(IndexerServiceError):
    """Base class for domain errors."""


class NotFoundError(DomainError):
    """Entity not found."""


class PreconditionFailedError(DomainError):
    """Lifecycle operation invoked from a status that does not permit it."""

    def __init__(self, message: str, current: str | None = None) -> None:
        super().__init__(message, code="PRECONDITION_FAILED")
        self.current = current


class ValidationError(DomainError):
    """Input validation failed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


# =============================================================================
# Infrastructure Errors (system-level failures - typically 500)
# =============================================================================


class InfrastructureError(IndexerServiceError):
    """Base class for infrastructure/system errors."""


class PersistenceError(InfrastructureError):
    """Repository or storage I/O failed."""


class StorageUnavailableError(PersistenceError):
    """Storage backend is unreachable (transient connectivity failure)."""


class ProcessError(InfrastructureError):
    """Base class for indexer process supervision failures."""


class ProcessSpawnError(ProcessError):
    """The indexer process could not be launched."""


class ProcessStopError(ProcessError):
    """The indexer process could not be found or did not terminate in time."""


class QueueError(InfrastructureError):
    """Sending, receiving or acknowledging a queue message failed."""


class ConfigurationError(InfrastructureError):
    """System misconfiguration detected."""
