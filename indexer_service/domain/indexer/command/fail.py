import logfire

from indexer_service.domain.indexer.model.value import IndexerId
from indexer_service.domain.indexer.query.get_indexer import IndexerDetail
from indexer_service.domain.indexer.service.lifecycle import IndexerLifecycleService
from indexer_service.domain.shared.command import Command, CommandHandler


class FailIndexer(Command):
    """Record that a running indexer's process has died."""

    id: IndexerId


class FailIndexerHandler(CommandHandler[FailIndexer, IndexerDetail]):
    lifecycle: IndexerLifecycleService

    async def run(self, cmd: FailIndexer) -> IndexerDetail:
        with logfire.span("FailIndexer", indexer_id=str(cmd.id)):
            indexer = await self.lifecycle.fail(cmd.id)
            return IndexerDetail.from_indexer(indexer)
