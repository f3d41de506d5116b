from datetime import datetime

from indexer_service.domain.indexer.model.aggregate import Indexer
from indexer_service.domain.indexer.model.value import IndexerId, IndexerStatus, IndexerType
from indexer_service.domain.indexer.service.lifecycle import IndexerLifecycleService
from indexer_service.domain.shared.command import Query, QueryHandler, Result


class GetIndexer(Query):
    id: IndexerId


class IndexerDetail(Result):
    id: IndexerId
    status: IndexerStatus
    indexer_type: IndexerType
    target_url: str
    process_id: int | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_indexer(cls, indexer: Indexer) -> "IndexerDetail":
        return cls(
            id=indexer.id,
            status=indexer.status,
            indexer_type=indexer.indexer_type,
            target_url=indexer.target_url,
            process_id=indexer.process_id,
            created_at=indexer.created_at,
            updated_at=indexer.updated_at,
        )


class GetIndexerHandler(QueryHandler[GetIndexer, IndexerDetail]):
    lifecycle: IndexerLifecycleService

    async def run(self, query: GetIndexer) -> IndexerDetail:
        indexer = await self.lifecycle.get(query.id)
        return IndexerDetail.from_indexer(indexer)
