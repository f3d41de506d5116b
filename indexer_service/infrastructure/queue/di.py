from dishka import provide
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from indexer_service.config import Config
from indexer_service.domain.shared.port.message_queue import MessageQueue
from indexer_service.infrastructure.queue.sql import SQLMessageQueue
from indexer_service.util.di.base import Provider, Scope


class QueueProvider(Provider):
    @provide(scope=Scope.APP)
    def get_message_queue(
        self, session_factory: async_sessionmaker[AsyncSession], config: Config
    ) -> MessageQueue:
        return SQLMessageQueue(
            session_factory,
            visibility_timeout=config.queue.visibility_timeout,
            max_receive_count=config.queue.max_receive_count,
        )
