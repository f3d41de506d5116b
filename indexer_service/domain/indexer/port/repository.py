from abc import abstractmethod
from typing import Protocol

from indexer_service.domain.indexer.model.aggregate import Indexer
from indexer_service.domain.indexer.model.value import IndexerId, IndexerStatus
from indexer_service.domain.shared.port import Port


class IndexerRepository(Port, Protocol):
    """Durable store of indexers.

    Status changes are conditional on the status the caller last observed:
    when no row matches both ``id`` and ``expected`` the update raises
    NotFoundError if the row is absent and PreconditionFailedError otherwise.
    Connectivity failures raise StorageUnavailableError; any other storage
    failure raises PersistenceError.
    """

    @abstractmethod
    async def insert(self, indexer: Indexer) -> None: ...

    @abstractmethod
    async def get(self, indexer_id: IndexerId) -> Indexer:
        """Return the indexer or raise NotFoundError."""
        ...

    @abstractmethod
    async def get_all(self, status: IndexerStatus | None = None) -> list[Indexer]:
        """Return all indexers, oldest first, optionally filtered by status."""
        ...

    @abstractmethod
    async def update_status(
        self,
        indexer_id: IndexerId,
        status: IndexerStatus,
        *,
        expected: IndexerStatus,
    ) -> Indexer: ...

    @abstractmethod
    async def update_status_and_process_id(
        self,
        indexer_id: IndexerId,
        status: IndexerStatus,
        process_id: int | None,
        *,
        expected: IndexerStatus,
    ) -> Indexer: ...
