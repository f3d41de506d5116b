import logfire

from indexer_service.domain.indexer.model.value import IndexerType
from indexer_service.domain.indexer.query.get_indexer import IndexerDetail
from indexer_service.domain.indexer.service.lifecycle import IndexerLifecycleService
from indexer_service.domain.shared.command import Command, CommandHandler


class CreateIndexer(Command):
    script: bytes
    target_url: str
    indexer_type: IndexerType = IndexerType.WEBHOOK


class CreateIndexerHandler(CommandHandler[CreateIndexer, IndexerDetail]):
    lifecycle: IndexerLifecycleService

    async def run(self, cmd: CreateIndexer) -> IndexerDetail:
        with logfire.span("CreateIndexer"):
            indexer = await self.lifecycle.create(
                script=cmd.script,
                target_url=cmd.target_url,
                indexer_type=cmd.indexer_type,
            )
            logfire.info("Indexer created", indexer_id=str(indexer.id))
            return IndexerDetail.from_indexer(indexer)
