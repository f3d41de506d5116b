"""FailIndexerConsumer - records process deaths reported on the failure queue."""

from indexer_service.domain.indexer.command.fail import FailIndexer, FailIndexerHandler
from indexer_service.domain.indexer.model.value import ControlQueue, parse_indexer_id
from indexer_service.domain.shared.consumer import QueueConsumer
from indexer_service.domain.shared.port.message_queue import QueueMessage


class FailIndexerConsumer(QueueConsumer):
    __queue__ = ControlQueue.FAILURE

    handler: FailIndexerHandler

    async def handle(self, message: QueueMessage) -> None:
        await self.handler.run(FailIndexer(id=parse_indexer_id(message.body)))
