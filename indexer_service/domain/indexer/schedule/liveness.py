"""LivenessMonitor - scheduled probe of every running indexer."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from indexer_service.domain.indexer.model.aggregate import Indexer
from indexer_service.domain.indexer.model.value import ControlQueue, IndexerId, IndexerStatus
from indexer_service.domain.indexer.port.repository import IndexerRepository
from indexer_service.domain.indexer.service.registry import HandlerRegistry
from indexer_service.domain.shared.consumer import Schedule
from indexer_service.domain.shared.port.message_queue import MessageQueue

logger = logging.getLogger(__name__)


@dataclass
class LivenessMonitor(Schedule):
    """Reports dead indexer processes on the failure queue.

    The monitor never changes an indexer itself: the failure-queue consumer
    performs the Running -> FailedRunning transition.
    """

    repository: IndexerRepository
    handlers: HandlerRegistry
    queue: MessageQueue

    async def run(self, **params: Any) -> None:
        """Probe all running indexers once.

        Params:
            probe_timeout: Seconds allowed for a single probe (default 5.0)
        """
        await self.check(probe_timeout=params.get("probe_timeout", 5.0))

    async def check(self, probe_timeout: float = 5.0) -> list[IndexerId]:
        """Probe every Running indexer and return the ids reported dead."""
        running = await self.repository.get_all(IndexerStatus.RUNNING)
        dead: list[IndexerId] = []
        errors = 0
        for indexer in running:
            try:
                if await self._probe(indexer, probe_timeout):
                    dead.append(indexer.id)
            except Exception:
                errors += 1
                logger.exception(f"Liveness check of indexer {indexer.id} failed")

        logger.debug(
            f"Liveness check: {len(running)} running, {len(dead)} reported dead, {errors} errors"
        )
        return dead

    async def _probe(self, indexer: Indexer, probe_timeout: float) -> bool:
        """Probe one indexer; report it and return True if its process is gone."""
        handler = self.handlers.get(indexer.indexer_type)
        try:
            alive = await asyncio.wait_for(handler.is_running(indexer), probe_timeout)
        except TimeoutError:
            logger.warning(
                f"Liveness probe of indexer {indexer.id} timed out after {probe_timeout}s"
            )
            return False

        if alive:
            return False
        logger.info(f"Indexer {indexer.id} (pid {indexer.process_id}) is not running")
        await self.queue.send(ControlQueue.FAILURE, str(indexer.id))
        return True
