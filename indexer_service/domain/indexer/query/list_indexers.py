from indexer_service.domain.indexer.model.value import IndexerStatus
from indexer_service.domain.indexer.query.get_indexer import IndexerDetail
from indexer_service.domain.indexer.service.lifecycle import IndexerLifecycleService
from indexer_service.domain.shared.command import Query, QueryHandler, Result


class ListIndexers(Query):
    status: IndexerStatus | None = None


class IndexerList(Result):
    items: list[IndexerDetail]
    total: int


class ListIndexersHandler(QueryHandler[ListIndexers, IndexerList]):
    lifecycle: IndexerLifecycleService

    async def run(self, query: ListIndexers) -> IndexerList:
        indexers = await self.lifecycle.list(query.status)
        return IndexerList(
            items=[IndexerDetail.from_indexer(i) for i in indexers],
            total=len(indexers),
        )
