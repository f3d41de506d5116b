"""Worker and WorkerPool for pull-based queue processing."""

import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, NewType

from apscheduler import AsyncScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dishka import AsyncContainer

from indexer_service.domain.shared.consumer import (
    QueueConsumer,
    Schedule,
    WorkerConfig,
    WorkerState,
    WorkerStatus,
)
from indexer_service.domain.shared.error import DomainError
from indexer_service.domain.shared.port.message_queue import MessageQueue
from indexer_service.util.di.base import Scope

logger = logging.getLogger(__name__)


@dataclass
class ScheduleConfig:
    """Configuration for a scheduled task."""

    schedule_type: type[Schedule]
    interval: float  # Seconds between runs
    id: str
    params: dict[str, Any] = field(default_factory=dict)


ScheduleConfigs = NewType("ScheduleConfigs", list[ScheduleConfig])


class Worker:
    """Pull-based queue worker that delegates to a QueueConsumer.

    Each poll opens a UOW scope, receives at most one message and hands it to
    a consumer resolved from that scope. The outcome decides the message's
    fate:

    - handle() returns: the message is deleted.
    - handle() raises a DomainError (unknown indexer, wrong status, malformed
      body): retrying cannot help, so the message is deleted and counted as
      discarded.
    - handle() raises anything else: the message is left alone and becomes
      visible again after the visibility timeout.

    Example:
        worker = Worker(FailIndexerConsumer, visibility_timeout=60.0)
        worker.set_container(container)
        worker.start()
    """

    def __init__(
        self,
        consumer_type: type[QueueConsumer],
        *,
        index: int = 0,
        poll_interval: float | None = None,
        visibility_timeout: float = 30.0,
    ) -> None:
        self._consumer_type = consumer_type
        self._config = WorkerConfig(
            name=f"{consumer_type.__name__}-{index}",
            queue=consumer_type.__queue__,
            poll_interval=poll_interval or consumer_type.__poll_interval__,
            visibility_timeout=visibility_timeout,
        )
        self._state = WorkerState(config=self._config)
        self._shutdown = False
        self._task: asyncio.Task | None = None
        self._container: AsyncContainer | None = None

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def consumer_type(self) -> type[QueueConsumer]:
        return self._consumer_type

    @property
    def config(self) -> WorkerConfig:
        return self._config

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    def set_container(self, container: AsyncContainer) -> None:
        """Set the DI container for scoped dependency resolution."""
        self._container = container

    def start(self) -> asyncio.Task:
        """Start the worker in a background task."""
        if self._container is None:
            raise RuntimeError("Container not set. Call set_container() first.")

        self._shutdown = False
        self._task = asyncio.create_task(self._run(), name=f"worker-{self.name}")
        logger.info(f"Worker '{self.name}' started on queue '{self._config.queue}'")
        return self._task

    def stop(self) -> None:
        """Signal the worker to stop after the message it is processing."""
        self._shutdown = True
        self._state.status = WorkerStatus.STOPPING
        logger.info(f"Worker '{self.name}' stopping...")

    async def _run(self) -> None:
        """Main worker loop."""
        try:
            while not self._shutdown:
                try:
                    had_message = await self.poll_once()
                except Exception as e:
                    # Queue unavailable; back off and try again
                    self._state.error = e
                    logger.error(f"Worker '{self.name}' poll failed: {e}")
                    had_message = False
                if not had_message:
                    await asyncio.sleep(self._config.poll_interval)
        except asyncio.CancelledError:
            logger.info(f"Worker '{self.name}' cancelled")
            raise
        finally:
            logger.info(f"Worker '{self.name}' stopped")

    async def poll_once(self) -> bool:
        """Execute one poll cycle within a UOW scope.

        Returns:
            True if a message was received, False if the queue was empty.
        """
        if self._container is None:
            raise RuntimeError("Container not set")

        self._state.status = WorkerStatus.RECEIVING

        async with self._container(scope=Scope.UOW) as scope:
            queue = await scope.get(MessageQueue)
            message = await queue.receive(
                self._config.queue, visibility_timeout=self._config.visibility_timeout
            )

            if message is None:
                self._state.status = WorkerStatus.IDLE
                return False

            self._state.status = WorkerStatus.PROCESSING
            self._state.current_message = message
            self._state.last_receive_at = datetime.now(UTC)

            try:
                consumer = await scope.get(self._consumer_type)
                await consumer.handle(message)
                await queue.delete(self._config.queue, message)
                self._state.processed_count += 1

            except DomainError as e:
                logger.warning(
                    f"Worker '{self.name}' discarding message {message.id} "
                    f"(body={message.body!r}): {e.message}"
                )
                await queue.delete(self._config.queue, message)
                self._state.discarded_count += 1

            except Exception as e:
                self._state.failed_count += 1
                self._state.error = e
                logger.exception(
                    f"Worker '{self.name}' failed on message {message.id} "
                    f"(delivery {message.receive_count}); leaving it for redelivery"
                )

            finally:
                self._state.current_message = None
                self._state.status = WorkerStatus.IDLE

        return True


class WorkerPool:
    """Manages queue workers and scheduled tasks.

    Usage:
        pool = WorkerPool(container, schedules=schedules)
        pool.register(StartIndexerConsumer)
        pool.register(FailIndexerConsumer)

        async with pool:
            # Workers are running
            await some_long_running_task()
        # Workers are stopped
    """

    def __init__(
        self,
        container: AsyncContainer | None = None,
        schedules: ScheduleConfigs | None = None,
        *,
        poll_interval: float | None = None,
        visibility_timeout: float = 30.0,
    ) -> None:
        self._container = container
        self._workers: list[Worker] = []
        self._schedules = schedules or ScheduleConfigs([])
        self._poll_interval = poll_interval
        self._visibility_timeout = visibility_timeout
        self._scheduler: AsyncScheduler | None = None
        self._exit_stack: AsyncExitStack | None = None
        self._schedule_failures: dict[str, int] = {}

    def set_container(self, container: AsyncContainer) -> None:
        """Set the DI container for all workers."""
        self._container = container
        for worker in self._workers:
            worker.set_container(container)

    @property
    def workers(self) -> list[Worker]:
        return self._workers

    @property
    def schedules(self) -> ScheduleConfigs:
        return self._schedules

    def register(
        self, consumer_type: type[QueueConsumer], concurrency: int | None = None
    ) -> list[Worker]:
        """Create ``concurrency`` workers for a consumer type.

        Defaults to the consumer's ``__concurrency__``.
        """
        count = concurrency or consumer_type.__concurrency__
        created = []
        for index in range(count):
            worker = Worker(
                consumer_type,
                index=index,
                poll_interval=self._poll_interval,
                visibility_timeout=self._visibility_timeout,
            )
            if self._container is not None:
                worker.set_container(self._container)
            self._workers.append(worker)
            created.append(worker)
        logger.debug(f"Registered consumer '{consumer_type.__name__}' with {count} worker(s)")
        return created

    def get_worker(self, name: str) -> Worker | None:
        for worker in self._workers:
            if worker.name == name:
                return worker
        return None

    async def start(self) -> None:
        """Start all workers and scheduled tasks."""
        if self._container is None:
            raise RuntimeError("Container not set. Call set_container() first.")

        for worker in self._workers:
            worker.set_container(self._container)

        if self._schedules:
            self._exit_stack = AsyncExitStack()
            await self._exit_stack.__aenter__()

            self._scheduler = AsyncScheduler()
            await self._exit_stack.enter_async_context(self._scheduler)

            for config in self._schedules:
                await self._scheduler.add_schedule(
                    self._run_schedule,
                    IntervalTrigger(seconds=config.interval),
                    id=config.id,
                    kwargs={"config": config},
                )
                logger.debug(f"Registered schedule {config.id} (every {config.interval}s)")

            await self._scheduler.start_in_background()

        for worker in self._workers:
            worker.start()

        logger.info(
            f"WorkerPool started with {len(self._workers)} workers, "
            f"{len(self._schedules)} schedules"
        )

    async def stop(self, timeout: float = 30.0) -> None:
        """Stop all workers gracefully.

        Args:
            timeout: Maximum time to wait for workers to stop.
        """
        for worker in self._workers:
            worker.stop()

        tasks = [w.task for w in self._workers if w.task and not w.task.done()]
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=timeout)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if self._exit_stack:
            await self._exit_stack.__aexit__(None, None, None)
            self._exit_stack = None
            self._scheduler = None

        logger.info("WorkerPool stopped")

    async def _run_schedule(self, config: ScheduleConfig) -> None:
        """Interval task: run a scheduled task in UOW scope."""
        if self._container is None:
            return

        try:
            async with self._container(scope=Scope.UOW) as scope:
                schedule = await scope.get(config.schedule_type)
                await schedule.run(**config.params)

            self._schedule_failures.pop(config.id, None)
            logger.debug(f"Ran schedule {config.id}")

        except (asyncio.CancelledError, SystemExit, KeyboardInterrupt):
            raise
        except Exception as e:
            failures = self._schedule_failures.get(config.id, 0) + 1
            self._schedule_failures[config.id] = failures
            logger.error(f"Failed to run schedule {config.id} (failures: {failures}): {e}")
            if failures >= 5:
                logger.critical(f"Schedule {config.id} has failed {failures} consecutive times")

    async def __aenter__(self) -> "WorkerPool":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.stop()
