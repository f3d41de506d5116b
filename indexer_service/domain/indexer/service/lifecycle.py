import logging
from typing import Awaitable, List

from indexer_service.domain.indexer.model.aggregate import Indexer
from indexer_service.domain.indexer.model.value import (
    START_FAILURE_STATUSES,
    ControlQueue,
    IndexerId,
    IndexerStatus,
    IndexerType,
    script_key,
)
from indexer_service.domain.indexer.port.indexer_handler import IndexerHandler
from indexer_service.domain.indexer.port.repository import IndexerRepository
from indexer_service.domain.indexer.port.script_store import ScriptStore
from indexer_service.domain.indexer.service.registry import HandlerRegistry
from indexer_service.domain.shared.command import Service
from indexer_service.domain.shared.error import (
    PersistenceError,
    PreconditionFailedError,
    ProcessSpawnError,
    ProcessStopError,
    QueueError,
    ValidationError,
)
from indexer_service.domain.shared.port.message_queue import MessageQueue

logger = logging.getLogger(__name__)


class IndexerLifecycleService(Service):
    """Drives indexers through their lifecycle.

    Every transition reloads the indexer, checks its status, delegates the
    process work to the type's handler and persists the outcome with a
    conditional update, so a concurrent transition is detected instead of
    overwritten.
    """

    repository: IndexerRepository
    scripts: ScriptStore
    queue: MessageQueue
    handlers: HandlerRegistry
    start_failure_status: IndexerStatus = IndexerStatus.FAILED_RUNNING

    def __post_init__(self) -> None:
        if self.start_failure_status not in START_FAILURE_STATUSES:
            raise ValidationError(
                f"Invalid start failure status: {self.start_failure_status}",
                field="start_failure_status",
            )

    async def create(
        self,
        script: bytes,
        target_url: str,
        indexer_type: IndexerType = IndexerType.WEBHOOK,
    ) -> Indexer:
        indexer = Indexer.new(indexer_type=indexer_type, target_url=target_url)
        await self.scripts.put(script_key(indexer.id), script)
        await self.repository.insert(indexer)
        logger.info("Created %s indexer %s -> %s", indexer_type, indexer.id, target_url)

        try:
            await self.queue.send(ControlQueue.START, str(indexer.id))
        except QueueError as e:
            # The record stays Created and can be started explicitly.
            logger.error("Failed to enqueue start of indexer %s: %s", indexer.id, e)
        return indexer

    async def get(self, indexer_id: IndexerId) -> Indexer:
        return await self.repository.get(indexer_id)

    async def list(self, status: IndexerStatus | None = None) -> List[Indexer]:
        return await self.repository.get_all(status)

    async def start(self, indexer_id: IndexerId) -> Indexer:
        indexer = await self.repository.get(indexer_id)
        indexer.require_status(IndexerStatus.CREATED, "start")
        handler = self.handlers.get(indexer.indexer_type)

        try:
            pid = await handler.start(indexer)
        except ProcessSpawnError as e:
            logger.error("Failed to start indexer %s: %s", indexer_id, e)
            indexer.check_transition(self.start_failure_status)
            await self._persist(
                self.repository.update_status(
                    indexer_id, self.start_failure_status, expected=IndexerStatus.CREATED
                ),
                indexer_id,
            )
            raise

        indexer.check_transition(IndexerStatus.RUNNING)
        try:
            updated = await self._persist(
                self.repository.update_status_and_process_id(
                    indexer_id, IndexerStatus.RUNNING, pid, expected=IndexerStatus.CREATED
                ),
                indexer_id,
            )
        except (PreconditionFailedError, PersistenceError):
            # No record owns the spawned process once the update is lost.
            await self._stop_orphan(handler, indexer, pid)
            raise

        logger.info("Started indexer %s (pid %d)", indexer_id, pid)
        return updated

    async def stop(self, indexer_id: IndexerId) -> Indexer:
        indexer = await self.repository.get(indexer_id)
        indexer.require_status(IndexerStatus.RUNNING, "stop")
        handler = self.handlers.get(indexer.indexer_type)

        try:
            await handler.stop(indexer)
        except ProcessStopError as e:
            logger.error("Failed to stop indexer %s: %s", indexer_id, e)
            await self._persist(
                self.repository.update_status(
                    indexer_id, IndexerStatus.FAILED_STOPPING, expected=IndexerStatus.RUNNING
                ),
                indexer_id,
            )
            raise

        updated = await self._persist(
            self.repository.update_status_and_process_id(
                indexer_id, IndexerStatus.STOPPED, None, expected=IndexerStatus.RUNNING
            ),
            indexer_id,
        )
        logger.info("Stopped indexer %s", indexer_id)
        return updated

    async def fail(self, indexer_id: IndexerId) -> Indexer:
        indexer = await self.repository.get(indexer_id)
        indexer.require_status(IndexerStatus.RUNNING, "fail")

        updated = await self._persist(
            self.repository.update_status(
                indexer_id, IndexerStatus.FAILED_RUNNING, expected=IndexerStatus.RUNNING
            ),
            indexer_id,
        )
        logger.warning("Indexer %s failed while running (pid %s)", indexer_id, updated.process_id)
        return updated

    async def _persist(self, update: Awaitable[Indexer], indexer_id: IndexerId) -> Indexer:
        try:
            return await update
        except PersistenceError:
            logger.exception("Failed to persist transition of indexer %s", indexer_id)
            raise

    async def _stop_orphan(self, handler: IndexerHandler, indexer: Indexer, pid: int) -> None:
        orphan = indexer.model_copy(update={"process_id": pid})
        logger.warning("Stopping orphaned process %d of indexer %s", pid, indexer.id)
        try:
            await handler.stop(orphan)
        except ProcessStopError as e:
            logger.error("Failed to stop orphaned process %d: %s", pid, e)
