import logging

from dishka import provide

from indexer_service.config import Config
from indexer_service.domain.indexer.model.value import IndexerType
from indexer_service.domain.indexer.port.script_store import ScriptStore
from indexer_service.domain.indexer.service.registry import HandlerRegistry
from indexer_service.infrastructure.process.webhook import WebhookIndexerHandler
from indexer_service.util.di.base import Provider, Scope

logger = logging.getLogger(__name__)


class ProcessProvider(Provider):
    """Process handlers are APP-scoped: they own the processes they spawn."""

    @provide(scope=Scope.APP)
    def get_webhook_handler(self, config: Config, scripts: ScriptStore) -> WebhookIndexerHandler:
        return WebhookIndexerHandler(
            config=config.webhook,
            scripts=scripts,
            logs_dir=config.storage.logs_dir,
        )

    @provide(scope=Scope.APP)
    def get_handler_registry(self, webhook: WebhookIndexerHandler) -> HandlerRegistry:
        registry = HandlerRegistry({IndexerType.WEBHOOK: webhook})
        registry.validate()
        logger.info(f"Registered indexer handlers: {', '.join(t.value for t in registry)}")
        return registry
