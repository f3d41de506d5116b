from datetime import UTC, datetime
from typing import Any, List

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from indexer_service.domain.indexer.model.aggregate import Indexer
from indexer_service.domain.indexer.model.value import IndexerId, IndexerStatus
from indexer_service.domain.indexer.port.repository import IndexerRepository
from indexer_service.domain.shared.error import NotFoundError, PreconditionFailedError
from indexer_service.infrastructure.persistence.errors import translate_errors
from indexer_service.infrastructure.persistence.mappers.indexer import (
    indexer_to_dict,
    row_to_indexer,
)
from indexer_service.infrastructure.persistence.tables import indexers_table


class SQLAlchemyIndexerRepository(IndexerRepository):
    """SQLAlchemy implementation of IndexerRepository.

    Each call runs in its own short transaction so that no lock is held while
    a caller waits on a process.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, indexer: Indexer) -> None:
        with translate_errors(f"insert indexer {indexer.id}"):
            async with self._session_factory.begin() as session:
                await session.execute(insert(indexers_table).values(**indexer_to_dict(indexer)))

    async def get(self, indexer_id: IndexerId) -> Indexer:
        with translate_errors(f"load indexer {indexer_id}"):
            async with self._session_factory() as session:
                row = await self._fetch(session, indexer_id)
        if row is None:
            raise NotFoundError(f"Indexer not found: {indexer_id}")
        return row_to_indexer(row)

    async def get_all(self, status: IndexerStatus | None = None) -> List[Indexer]:
        stmt = select(indexers_table).order_by(indexers_table.c.created_at.asc())
        if status is not None:
            stmt = stmt.where(indexers_table.c.status == status.value)

        with translate_errors("list indexers"):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = [dict(r) for r in result.mappings().all()]
        return [row_to_indexer(r) for r in rows]

    async def update_status(
        self,
        indexer_id: IndexerId,
        status: IndexerStatus,
        *,
        expected: IndexerStatus,
    ) -> Indexer:
        return await self._transition(indexer_id, expected, status=status.value)

    async def update_status_and_process_id(
        self,
        indexer_id: IndexerId,
        status: IndexerStatus,
        process_id: int | None,
        *,
        expected: IndexerStatus,
    ) -> Indexer:
        return await self._transition(
            indexer_id, expected, status=status.value, process_id=process_id
        )

    async def _transition(
        self, indexer_id: IndexerId, expected: IndexerStatus, **values: Any
    ) -> Indexer:
        """Apply ``values`` only if the row is still in ``expected`` status."""
        stmt = (
            update(indexers_table)
            .where(
                indexers_table.c.id == str(indexer_id),
                indexers_table.c.status == expected.value,
            )
            .values(**values, updated_at=datetime.now(UTC))
        )

        with translate_errors(f"update indexer {indexer_id}"):
            async with self._session_factory.begin() as session:
                result = await session.execute(stmt)
                row = await self._fetch(session, indexer_id)
                if result.rowcount == 0:
                    if row is None:
                        raise NotFoundError(f"Indexer not found: {indexer_id}")
                    raise PreconditionFailedError(
                        f"Indexer {indexer_id} is {row['status']}, expected {expected}",
                        current=row["status"],
                    )
                # Parsed inside the transaction: an invalid result rolls back
                return row_to_indexer(row)

    @staticmethod
    async def _fetch(session: AsyncSession, indexer_id: IndexerId) -> dict[str, Any] | None:
        stmt = select(indexers_table).where(indexers_table.c.id == str(indexer_id))
        result = await session.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None
