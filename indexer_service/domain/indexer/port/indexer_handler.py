from abc import abstractmethod
from typing import Protocol

from indexer_service.domain.indexer.model.aggregate import Indexer
from indexer_service.domain.shared.port import Port


class IndexerHandler(Port, Protocol):
    """Runs the OS process behind one indexer type.

    Handlers never touch the repository; recording the outcome of a call is
    the lifecycle service's job.
    """

    @abstractmethod
    async def start(self, indexer: Indexer) -> int:
        """Launch the indexer's process and return its PID.

        Raises ProcessSpawnError if the process cannot be launched or exits
        during startup.
        """
        ...

    @abstractmethod
    async def stop(self, indexer: Indexer) -> None:
        """Terminate the indexer's process.

        Raises ProcessStopError if the process cannot be found or does not
        exit within the stop timeout.
        """
        ...

    @abstractmethod
    async def is_running(self, indexer: Indexer) -> bool:
        """Probe the process. A vanished process is reported as False."""
        ...
