from datetime import UTC, datetime
from uuid import uuid4

from pydantic import model_validator
from typing_extensions import Self

from indexer_service.domain.indexer.model.value import (
    PROCESS_FORBIDDEN,
    PROCESS_REQUIRED,
    TRANSITIONS,
    IndexerId,
    IndexerStatus,
    IndexerType,
)
from indexer_service.domain.shared.error import PreconditionFailedError
from indexer_service.domain.shared.model.value import Aggregate


class Indexer(Aggregate):
    id: IndexerId
    status: IndexerStatus = IndexerStatus.CREATED
    indexer_type: IndexerType
    target_url: str
    process_id: int | None = None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _check_process_id(self) -> Self:
        if self.status in PROCESS_FORBIDDEN and self.process_id is not None:
            raise ValueError(f"process_id must be empty while {self.status}")
        if self.status in PROCESS_REQUIRED and self.process_id is None:
            raise ValueError(f"process_id is required while {self.status}")
        return self

    @classmethod
    def new(cls, indexer_type: IndexerType, target_url: str) -> "Indexer":
        now = datetime.now(UTC)
        return cls(
            id=IndexerId(uuid4()),
            indexer_type=indexer_type,
            target_url=target_url,
            created_at=now,
            updated_at=now,
        )

    def require_status(self, expected: IndexerStatus, operation: str) -> None:
        """Raise PreconditionFailedError unless the indexer is in ``expected``."""
        if self.status != expected:
            raise PreconditionFailedError(
                f"Cannot {operation} indexer {self.id}: status is {self.status}, "
                f"expected {expected}",
                current=self.status,
            )

    def check_transition(self, target: IndexerStatus) -> None:
        """Raise PreconditionFailedError if ``status -> target`` is not a legal transition."""
        if target not in TRANSITIONS[self.status]:
            raise PreconditionFailedError(
                f"Illegal transition for indexer {self.id}: {self.status} -> {target}",
                current=self.status,
            )
