from typing import AsyncIterable

from dishka import provide
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from indexer_service.config import Config
from indexer_service.domain.indexer.port.repository import IndexerRepository
from indexer_service.domain.indexer.port.script_store import ScriptStore
from indexer_service.infrastructure.persistence.adapter.script_store import LocalScriptStore
from indexer_service.infrastructure.persistence.database import (
    create_db_engine,
    create_session_factory,
)
from indexer_service.infrastructure.persistence.repository.indexer import (
    SQLAlchemyIndexerRepository,
)
from indexer_service.util.di.base import Provider, Scope


class PersistenceProvider(Provider):
    # APP-scoped factories
    @provide(scope=Scope.APP)
    async def get_engine(self, config: Config) -> AsyncIterable[AsyncEngine]:
        engine = create_db_engine(config)
        yield engine
        await engine.dispose()

    @provide(scope=Scope.APP)
    def get_session_factory(self, engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
        return create_session_factory(engine)

    # Repositories open their own short transactions from the factory
    indexer_repo = provide(
        SQLAlchemyIndexerRepository, scope=Scope.UOW, provides=IndexerRepository
    )

    @provide(scope=Scope.APP)
    def get_script_store(self, config: Config) -> ScriptStore:
        return LocalScriptStore(base_path=config.storage.data_dir)
