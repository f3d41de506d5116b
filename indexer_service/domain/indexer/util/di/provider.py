from dishka import provide

from indexer_service.config import Config
from indexer_service.domain.indexer.command.create import CreateIndexerHandler
from indexer_service.domain.indexer.command.fail import FailIndexerHandler
from indexer_service.domain.indexer.command.start import StartIndexerHandler
from indexer_service.domain.indexer.command.stop import StopIndexerHandler
from indexer_service.domain.indexer.consumer.fail_indexer import FailIndexerConsumer
from indexer_service.domain.indexer.consumer.start_indexer import StartIndexerConsumer
from indexer_service.domain.indexer.port.repository import IndexerRepository
from indexer_service.domain.indexer.port.script_store import ScriptStore
from indexer_service.domain.indexer.query.get_indexer import GetIndexerHandler
from indexer_service.domain.indexer.query.list_indexers import ListIndexersHandler
from indexer_service.domain.indexer.schedule.liveness import LivenessMonitor
from indexer_service.domain.indexer.service.lifecycle import IndexerLifecycleService
from indexer_service.domain.indexer.service.registry import HandlerRegistry
from indexer_service.domain.shared.port.message_queue import MessageQueue
from indexer_service.util.di.base import Provider, Scope


class IndexerProvider(Provider):
    @provide(scope=Scope.UOW)
    def get_lifecycle_service(
        self,
        repository: IndexerRepository,
        scripts: ScriptStore,
        queue: MessageQueue,
        handlers: HandlerRegistry,
        config: Config,
    ) -> IndexerLifecycleService:
        return IndexerLifecycleService(
            repository=repository,
            scripts=scripts,
            queue=queue,
            handlers=handlers,
            start_failure_status=config.lifecycle.start_failure_status,
        )

    # Command Handlers
    create_handler = provide(CreateIndexerHandler, scope=Scope.UOW)
    start_handler = provide(StartIndexerHandler, scope=Scope.UOW)
    stop_handler = provide(StopIndexerHandler, scope=Scope.UOW)
    fail_handler = provide(FailIndexerHandler, scope=Scope.UOW)

    # Query Handlers
    get_indexer_handler = provide(GetIndexerHandler, scope=Scope.UOW)
    list_indexers_handler = provide(ListIndexersHandler, scope=Scope.UOW)

    # Consumers and schedules
    start_consumer = provide(StartIndexerConsumer, scope=Scope.UOW)
    fail_consumer = provide(FailIndexerConsumer, scope=Scope.UOW)
    liveness_monitor = provide(LivenessMonitor, scope=Scope.UOW)
