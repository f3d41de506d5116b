"""Global test fixtures."""

from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from indexer_service.domain.indexer.model.aggregate import Indexer
from indexer_service.domain.indexer.model.value import IndexerId, IndexerStatus, IndexerType
from indexer_service.infrastructure.persistence.adapter.script_store import LocalScriptStore
from indexer_service.infrastructure.persistence.database import create_session_factory
from indexer_service.infrastructure.persistence.repository.indexer import (
    SQLAlchemyIndexerRepository,
)
from indexer_service.infrastructure.persistence.tables import metadata
from indexer_service.infrastructure.queue.sql import SQLMessageQueue


def _make_indexer(
    status: IndexerStatus = IndexerStatus.CREATED,
    process_id: int | None = None,
    target_url: str = "https://example.com/hook",
) -> Indexer:
    """Create an Indexer in the given state for testing."""
    now = datetime.now(UTC)
    return Indexer(
        id=IndexerId(uuid4()),
        status=status,
        indexer_type=IndexerType.WEBHOOK,
        target_url=target_url,
        process_id=process_id,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def make_indexer():
    """Factory for Indexer aggregates in a given state."""
    return _make_indexer


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "indexer.db"


@pytest_asyncio.fixture
async def engine(db_path: Path):
    """File-backed SQLite engine with all tables created.

    A file database (rather than :memory:) gives every connection its own
    transaction, which the conditional-update tests depend on.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def repository(session_factory) -> SQLAlchemyIndexerRepository:
    return SQLAlchemyIndexerRepository(session_factory)


@pytest.fixture
def message_queue(session_factory) -> SQLMessageQueue:
    return SQLMessageQueue(session_factory, visibility_timeout=30.0, max_receive_count=3)


@pytest.fixture
def script_store(tmp_path: Path) -> LocalScriptStore:
    return LocalScriptStore(tmp_path / "data")
