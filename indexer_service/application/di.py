from dishka import AsyncContainer, from_context, make_async_container
from starlette.requests import Request

from indexer_service.config import Config
from indexer_service.domain.indexer.util.di import IndexerProvider
from indexer_service.infrastructure.persistence import PersistenceProvider
from indexer_service.infrastructure.process.di import ProcessProvider
from indexer_service.infrastructure.queue.di import QueueProvider
from indexer_service.infrastructure.worker.di import WorkerProvider
from indexer_service.util.di.base import Provider, Scope


class ContextProvider(Provider):
    """Values passed into the container rather than built by it."""

    config = from_context(provides=Config, scope=Scope.APP)
    request = from_context(provides=Request, scope=Scope.UOW)


def create_container(config: Config | None = None) -> AsyncContainer:
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()  # type: ignore[call-arg]

    return make_async_container(
        ContextProvider(),
        PersistenceProvider(),
        QueueProvider(),
        ProcessProvider(),
        IndexerProvider(),
        WorkerProvider(),
        context={Config: config},
        scopes=Scope,  # type: ignore[arg-type]  # Custom scope class
    )
