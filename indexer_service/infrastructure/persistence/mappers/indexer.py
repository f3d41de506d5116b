from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from indexer_service.domain.indexer.model.aggregate import Indexer
from indexer_service.domain.indexer.model.value import IndexerId, IndexerStatus, IndexerType
from indexer_service.domain.shared.error import PersistenceError


def _as_utc(value: datetime) -> datetime:
    # SQLite drops the offset; stored values are always UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def row_to_indexer(row: dict[str, Any]) -> Indexer:
    """Convert database row to Indexer aggregate.

    Raises PersistenceError for a row that does not describe a valid indexer,
    such as an unknown status or type name.
    """
    try:
        return Indexer(
            id=IndexerId(UUID(row["id"])),
            status=IndexerStatus(row["status"]),
            indexer_type=IndexerType(row["indexer_type"]),
            target_url=row["target_url"],
            process_id=row.get("process_id"),
            created_at=_as_utc(row["created_at"]),
            updated_at=_as_utc(row["updated_at"]),
        )
    except (ValueError, KeyError, PydanticValidationError) as e:
        raise PersistenceError(f"Corrupt indexer row {row.get('id')!r}: {e}") from e


def indexer_to_dict(indexer: Indexer) -> dict[str, Any]:
    """Convert Indexer aggregate to database dict."""
    return {
        "id": str(indexer.id),
        "status": indexer.status.value,
        "indexer_type": indexer.indexer_type.value,
        "target_url": indexer.target_url,
        "process_id": indexer.process_id,
        "created_at": indexer.created_at,
        "updated_at": indexer.updated_at,
    }
