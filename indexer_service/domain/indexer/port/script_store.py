from abc import abstractmethod
from pathlib import Path
from typing import Protocol

from indexer_service.domain.shared.port import Port


class ScriptStore(Port, Protocol):
    """Blob storage for uploaded indexer scripts, addressed by key."""

    @abstractmethod
    async def put(self, key: str, content: bytes) -> None: ...

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Return the stored bytes or raise NotFoundError."""
        ...

    @abstractmethod
    def locate(self, key: str) -> Path:
        """Return the local path of a stored script, for handing to a process."""
        ...
