"""HandlerRegistry - the closed mapping from indexer type to process handler."""

from collections.abc import Iterator, Mapping

from indexer_service.domain.indexer.model.value import IndexerType
from indexer_service.domain.indexer.port.indexer_handler import IndexerHandler
from indexer_service.domain.shared.error import ConfigurationError


class HandlerRegistry:
    """Registry of process handlers, one per IndexerType."""

    def __init__(self, handlers: Mapping[IndexerType, IndexerHandler]) -> None:
        self._handlers = dict(handlers)

    def validate(self) -> None:
        """Raise ConfigurationError unless every IndexerType has a handler."""
        missing = [t for t in IndexerType if t not in self._handlers]
        if missing:
            names = ", ".join(t.value for t in missing)
            raise ConfigurationError(f"No indexer handler registered for: {names}")

    def get(self, indexer_type: IndexerType) -> IndexerHandler:
        try:
            return self._handlers[indexer_type]
        except KeyError:
            raise ConfigurationError(
                f"No indexer handler registered for: {indexer_type}"
            ) from None

    def __contains__(self, indexer_type: object) -> bool:
        return indexer_type in self._handlers

    def __iter__(self) -> Iterator[IndexerType]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)
