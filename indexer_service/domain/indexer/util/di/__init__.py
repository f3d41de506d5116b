from indexer_service.domain.indexer.util.di.provider import IndexerProvider

__all__ = ["IndexerProvider"]
