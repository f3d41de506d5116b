from indexer_service.infrastructure.persistence.di import PersistenceProvider

__all__ = ["PersistenceProvider"]
