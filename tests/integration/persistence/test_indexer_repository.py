"""Integration tests for SQLAlchemyIndexerRepository against SQLite."""

import asyncio
from uuid import uuid4

import pytest
from sqlalchemy import update

from indexer_service.domain.indexer.model.value import IndexerId, IndexerStatus
from indexer_service.domain.shared.error import (
    NotFoundError,
    PersistenceError,
    PreconditionFailedError,
)
from indexer_service.infrastructure.persistence.tables import indexers_table


class TestInsertAndGet:
    @pytest.mark.asyncio
    async def test_inserted_indexer_reads_back_equal(self, repository, make_indexer):
        indexer = make_indexer()

        await repository.insert(indexer)

        assert await repository.get(indexer.id) == indexer

    @pytest.mark.asyncio
    async def test_get_unknown_id_raises_not_found(self, repository):
        with pytest.raises(NotFoundError):
            await repository.get(IndexerId(uuid4()))

    @pytest.mark.asyncio
    async def test_duplicate_insert_is_persistence_error(self, repository, make_indexer):
        indexer = make_indexer()
        await repository.insert(indexer)

        with pytest.raises(PersistenceError):
            await repository.insert(indexer)


class TestGetAll:
    @pytest.mark.asyncio
    async def test_lists_in_creation_order(self, repository, make_indexer):
        first = make_indexer()
        second = make_indexer()
        await repository.insert(second)
        await repository.insert(first)

        ids = [i.id for i in await repository.get_all()]

        assert ids == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_filters_by_status(self, repository, make_indexer):
        created = make_indexer()
        running = make_indexer(status=IndexerStatus.RUNNING, process_id=10)
        await repository.insert(created)
        await repository.insert(running)

        result = await repository.get_all(IndexerStatus.RUNNING)

        assert [i.id for i in result] == [running.id]

    @pytest.mark.asyncio
    async def test_empty_repository(self, repository):
        assert await repository.get_all() == []


class TestConditionalUpdates:
    @pytest.mark.asyncio
    async def test_update_status_and_process_id(self, repository, make_indexer):
        indexer = make_indexer()
        await repository.insert(indexer)

        updated = await repository.update_status_and_process_id(
            indexer.id, IndexerStatus.RUNNING, 321, expected=IndexerStatus.CREATED
        )

        assert updated.status == IndexerStatus.RUNNING
        assert updated.process_id == 321
        assert updated.updated_at >= indexer.updated_at
        assert await repository.get(indexer.id) == updated

    @pytest.mark.asyncio
    async def test_update_status_keeps_process_id(self, repository, make_indexer):
        indexer = make_indexer(status=IndexerStatus.RUNNING, process_id=8)
        await repository.insert(indexer)

        updated = await repository.update_status(
            indexer.id, IndexerStatus.FAILED_STOPPING, expected=IndexerStatus.RUNNING
        )

        assert updated.status == IndexerStatus.FAILED_STOPPING
        assert updated.process_id == 8

    @pytest.mark.asyncio
    async def test_stale_expected_status_is_precondition_failed(self, repository, make_indexer):
        indexer = make_indexer(status=IndexerStatus.STOPPED)
        await repository.insert(indexer)

        with pytest.raises(PreconditionFailedError) as exc_info:
            await repository.update_status(
                indexer.id, IndexerStatus.FAILED_RUNNING, expected=IndexerStatus.RUNNING
            )

        assert exc_info.value.current == "Stopped"
        assert (await repository.get(indexer.id)).status == IndexerStatus.STOPPED

    @pytest.mark.asyncio
    async def test_update_of_unknown_id_is_not_found(self, repository):
        with pytest.raises(NotFoundError):
            await repository.update_status(
                IndexerId(uuid4()), IndexerStatus.RUNNING, expected=IndexerStatus.CREATED
            )

    @pytest.mark.asyncio
    async def test_update_breaking_process_invariant_rolls_back(self, repository, make_indexer):
        indexer = make_indexer()
        await repository.insert(indexer)

        # Running without a process id is not a valid indexer
        with pytest.raises(PersistenceError):
            await repository.update_status(
                indexer.id, IndexerStatus.RUNNING, expected=IndexerStatus.CREATED
            )

        assert (await repository.get(indexer.id)).status == IndexerStatus.CREATED

    @pytest.mark.asyncio
    async def test_concurrent_stop_and_fail_have_one_winner(self, repository, make_indexer):
        indexer = make_indexer(status=IndexerStatus.RUNNING, process_id=99)
        await repository.insert(indexer)

        results = await asyncio.gather(
            repository.update_status_and_process_id(
                indexer.id, IndexerStatus.STOPPED, None, expected=IndexerStatus.RUNNING
            ),
            repository.update_status(
                indexer.id, IndexerStatus.FAILED_RUNNING, expected=IndexerStatus.RUNNING
            ),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, PreconditionFailedError)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert (await repository.get(indexer.id)).status == winners[0].status


class TestCorruptRows:
    @pytest.mark.asyncio
    async def test_unknown_status_in_database_is_persistence_error(
        self, repository, session_factory, make_indexer
    ):
        indexer = make_indexer()
        await repository.insert(indexer)
        async with session_factory.begin() as session:
            await session.execute(
                update(indexers_table)
                .where(indexers_table.c.id == str(indexer.id))
                .values(status="Paused")
            )

        with pytest.raises(PersistenceError):
            await repository.get(indexer.id)
