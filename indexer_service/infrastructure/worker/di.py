"""Dependency injection provider for background processing."""

import logging
from typing import NewType

from dishka import AsyncContainer, provide

from indexer_service.config import Config
from indexer_service.domain.indexer.consumer.fail_indexer import FailIndexerConsumer
from indexer_service.domain.indexer.consumer.start_indexer import StartIndexerConsumer
from indexer_service.domain.indexer.schedule.liveness import LivenessMonitor
from indexer_service.domain.shared.consumer import QueueConsumer
from indexer_service.infrastructure.worker.worker import (
    ScheduleConfig,
    ScheduleConfigs,
    WorkerPool,
)
from indexer_service.util.di.base import Provider, Scope

logger = logging.getLogger(__name__)

ConsumerTypes = NewType("ConsumerTypes", list[type[QueueConsumer]])

# All queue consumers for WorkerPool registration
CONSUMERS: ConsumerTypes = ConsumerTypes(
    [
        StartIndexerConsumer,
        FailIndexerConsumer,
    ]
)


class WorkerProvider(Provider):
    """Provides the WorkerPool and its schedules (APP-scoped)."""

    @provide(scope=Scope.APP)
    def get_consumer_types(self) -> ConsumerTypes:
        return CONSUMERS

    @provide(scope=Scope.APP)
    def get_schedules(self, config: Config) -> ScheduleConfigs:
        schedules: list[ScheduleConfig] = []
        if config.monitor.enabled:
            schedules.append(
                ScheduleConfig(
                    schedule_type=LivenessMonitor,
                    interval=config.monitor.interval,
                    id="liveness-monitor",
                    params={"probe_timeout": config.monitor.probe_timeout},
                )
            )
        return ScheduleConfigs(schedules)

    @provide(scope=Scope.APP)
    def get_worker_pool(
        self,
        container: AsyncContainer,
        consumer_types: ConsumerTypes,
        schedules: ScheduleConfigs,
        config: Config,
    ) -> WorkerPool:
        pool = WorkerPool(
            container=container,
            schedules=schedules,
            poll_interval=config.worker.poll_interval,
            visibility_timeout=config.queue.visibility_timeout,
        )
        for consumer_type in consumer_types:
            pool.register(consumer_type, concurrency=config.worker.concurrency)

        logger.info(f"WorkerPool created with {len(pool.workers)} workers")
        return pool
