import logfire

from indexer_service.domain.indexer.model.value import IndexerId
from indexer_service.domain.indexer.query.get_indexer import IndexerDetail
from indexer_service.domain.indexer.service.lifecycle import IndexerLifecycleService
from indexer_service.domain.shared.command import Command, CommandHandler


class StartIndexer(Command):
    id: IndexerId


class StartIndexerHandler(CommandHandler[StartIndexer, IndexerDetail]):
    lifecycle: IndexerLifecycleService

    async def run(self, cmd: StartIndexer) -> IndexerDetail:
        with logfire.span("StartIndexer", indexer_id=str(cmd.id)):
            indexer = await self.lifecycle.start(cmd.id)
            return IndexerDetail.from_indexer(indexer)
