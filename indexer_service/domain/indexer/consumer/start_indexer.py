"""StartIndexerConsumer - starts indexers whose ids arrive on the start queue."""

import logging

from indexer_service.domain.indexer.command.start import StartIndexer, StartIndexerHandler
from indexer_service.domain.indexer.model.value import ControlQueue, parse_indexer_id
from indexer_service.domain.shared.consumer import QueueConsumer
from indexer_service.domain.shared.error import ProcessSpawnError
from indexer_service.domain.shared.port.message_queue import QueueMessage

logger = logging.getLogger(__name__)


class StartIndexerConsumer(QueueConsumer):
    """Starts the indexer named by each start-queue message.

    A spawn failure has already been recorded as the indexer's start-failure
    status by the time it reaches here, so the message is acknowledged rather
    than redelivered into a second spawn attempt.
    """

    __queue__ = ControlQueue.START

    handler: StartIndexerHandler

    async def handle(self, message: QueueMessage) -> None:
        indexer_id = parse_indexer_id(message.body)
        try:
            await self.handler.run(StartIndexer(id=indexer_id))
        except ProcessSpawnError as e:
            logger.warning(f"Indexer {indexer_id} failed to start: {e.message}")
