import logfire

from indexer_service.domain.indexer.model.value import IndexerId
from indexer_service.domain.indexer.query.get_indexer import IndexerDetail
from indexer_service.domain.indexer.service.lifecycle import IndexerLifecycleService
from indexer_service.domain.shared.command import Command, CommandHandler


class StopIndexer(Command):
    id: IndexerId


class StopIndexerHandler(CommandHandler[StopIndexer, IndexerDetail]):
    lifecycle: IndexerLifecycleService

    async def run(self, cmd: StopIndexer) -> IndexerDetail:
        with logfire.span("StopIndexer", indexer_id=str(cmd.id)):
            indexer = await self.lifecycle.stop(cmd.id)
            return IndexerDetail.from_indexer(indexer)
