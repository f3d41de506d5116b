"""Translation of SQLAlchemy failures into service errors."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError

from indexer_service.domain.shared.error import (
    InfrastructureError,
    PersistenceError,
    StorageUnavailableError,
)


def is_connectivity_error(error: SQLAlchemyError) -> bool:
    """True for failures that a retry against a healthy database would not see."""
    if isinstance(error, (OperationalError, InterfaceError)):
        return True
    return isinstance(error, DBAPIError) and error.connection_invalidated


@contextmanager
def translate_errors(
    action: str, error_cls: type[InfrastructureError] = PersistenceError
) -> Iterator[None]:
    """Re-raise SQLAlchemy errors raised inside the block as service errors.

    Connectivity failures become StorageUnavailableError when ``error_cls`` is
    a PersistenceError; everything else becomes ``error_cls``.
    """
    try:
        yield
    except SQLAlchemyError as e:
        if issubclass(error_cls, PersistenceError) and is_connectivity_error(e):
            raise StorageUnavailableError(f"Database unavailable while trying to {action}") from e
        raise error_cls(f"Failed to {action}: {e.__class__.__name__}") from e
