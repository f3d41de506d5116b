"""End-to-end lifecycle against the real repository, queue and script store.

Only the process handler is faked: it hands out PIDs and lets the test
decide which of them are still alive.
"""

import pytest

from indexer_service.domain.indexer.command.fail import FailIndexerHandler
from indexer_service.domain.indexer.command.start import StartIndexerHandler
from indexer_service.domain.indexer.consumer.fail_indexer import FailIndexerConsumer
from indexer_service.domain.indexer.consumer.start_indexer import StartIndexerConsumer
from indexer_service.domain.indexer.model.value import (
    ControlQueue,
    IndexerStatus,
    IndexerType,
    script_key,
)
from indexer_service.domain.indexer.schedule.liveness import LivenessMonitor
from indexer_service.domain.indexer.service.lifecycle import IndexerLifecycleService
from indexer_service.domain.indexer.service.registry import HandlerRegistry
from indexer_service.domain.shared.error import (
    PreconditionFailedError,
    ProcessSpawnError,
    ProcessStopError,
)


class FakeIndexerHandler:
    def __init__(self) -> None:
        self.next_pid = 1000
        self.alive: set[int] = set()
        self.fail_spawn = False
        self.fail_stop = False

    async def start(self, indexer) -> int:
        if self.fail_spawn:
            raise ProcessSpawnError("exited during startup")
        self.next_pid += 1
        self.alive.add(self.next_pid)
        return self.next_pid

    async def stop(self, indexer) -> None:
        if self.fail_stop:
            raise ProcessStopError("did not exit")
        self.alive.discard(indexer.process_id)

    async def is_running(self, indexer) -> bool:
        return indexer.process_id in self.alive


@pytest.fixture
def fake_handler() -> FakeIndexerHandler:
    return FakeIndexerHandler()


@pytest.fixture
def handlers(fake_handler) -> HandlerRegistry:
    return HandlerRegistry({IndexerType.WEBHOOK: fake_handler})


@pytest.fixture
def lifecycle(repository, script_store, message_queue, handlers) -> IndexerLifecycleService:
    return IndexerLifecycleService(
        repository=repository,
        scripts=script_store,
        queue=message_queue,
        handlers=handlers,
    )


async def _drain(queue, consumer) -> int:
    """Deliver every pending message on the consumer's queue. Returns the count."""
    handled = 0
    while (message := await queue.receive(consumer.__queue__)) is not None:
        await consumer.handle(message)
        await queue.delete(consumer.__queue__, message)
        handled += 1
    return handled


@pytest.mark.asyncio
async def test_create_is_started_by_start_queue_consumer(
    lifecycle, message_queue, script_store, repository
):
    indexer = await lifecycle.create(b"export default {}", "https://sink.test")

    assert await script_store.get(script_key(indexer.id)) == b"export default {}"
    assert (await repository.get(indexer.id)).status == IndexerStatus.CREATED

    consumer = StartIndexerConsumer(handler=StartIndexerHandler(lifecycle=lifecycle))
    assert await _drain(message_queue, consumer) == 1

    started = await repository.get(indexer.id)
    assert started.status == IndexerStatus.RUNNING
    assert started.process_id is not None


@pytest.mark.asyncio
async def test_stop_after_start(lifecycle, repository):
    indexer = await lifecycle.create(b"x", "https://sink.test")
    await lifecycle.start(indexer.id)

    stopped = await lifecycle.stop(indexer.id)

    assert stopped.status == IndexerStatus.STOPPED
    assert stopped.process_id is None
    assert stopped.id == indexer.id
    assert stopped.indexer_type == IndexerType.WEBHOOK
    assert stopped.target_url == "https://sink.test"
    assert stopped.created_at == indexer.created_at
    assert await repository.get(indexer.id) == stopped
    with pytest.raises(PreconditionFailedError):
        await lifecycle.stop(indexer.id)


@pytest.mark.asyncio
async def test_second_start_is_rejected(lifecycle, fake_handler):
    indexer = await lifecycle.create(b"x", "https://sink.test")
    await lifecycle.start(indexer.id)

    with pytest.raises(PreconditionFailedError):
        await lifecycle.start(indexer.id)

    assert len(fake_handler.alive) == 1


@pytest.mark.asyncio
async def test_dead_process_is_failed_via_failure_queue(
    lifecycle, repository, message_queue, handlers, fake_handler
):
    indexer = await lifecycle.create(b"x", "https://sink.test")
    running = await lifecycle.start(indexer.id)
    fake_handler.alive.discard(running.process_id)

    monitor = LivenessMonitor(repository=repository, handlers=handlers, queue=message_queue)
    assert await monitor.check() == [indexer.id]

    # The monitor only reports; the record changes when the consumer runs
    assert (await repository.get(indexer.id)).status == IndexerStatus.RUNNING

    consumer = FailIndexerConsumer(handler=FailIndexerHandler(lifecycle=lifecycle))
    assert await _drain(message_queue, consumer) == 1

    failed = await repository.get(indexer.id)
    assert failed.status == IndexerStatus.FAILED_RUNNING
    assert failed.process_id == running.process_id


@pytest.mark.asyncio
async def test_failure_report_after_stop_is_rejected(lifecycle, message_queue):
    indexer = await lifecycle.create(b"x", "https://sink.test")
    await lifecycle.start(indexer.id)
    await message_queue.send(ControlQueue.FAILURE, str(indexer.id))
    await lifecycle.stop(indexer.id)

    consumer = FailIndexerConsumer(handler=FailIndexerHandler(lifecycle=lifecycle))
    message = await message_queue.receive(ControlQueue.FAILURE)

    with pytest.raises(PreconditionFailedError):
        await consumer.handle(message)


@pytest.mark.asyncio
async def test_spawn_failure_via_consumer_records_failed_running(
    lifecycle, repository, message_queue, fake_handler
):
    fake_handler.fail_spawn = True
    indexer = await lifecycle.create(b"x", "https://sink.test")

    consumer = StartIndexerConsumer(handler=StartIndexerHandler(lifecycle=lifecycle))
    assert await _drain(message_queue, consumer) == 1

    failed = await repository.get(indexer.id)
    assert failed.status == IndexerStatus.FAILED_RUNNING
    assert failed.process_id is None


@pytest.mark.asyncio
async def test_stop_failure_records_failed_stopping(lifecycle, repository, fake_handler):
    indexer = await lifecycle.create(b"x", "https://sink.test")
    running = await lifecycle.start(indexer.id)
    fake_handler.fail_stop = True

    with pytest.raises(ProcessStopError):
        await lifecycle.stop(indexer.id)

    record = await repository.get(indexer.id)
    assert record.status == IndexerStatus.FAILED_STOPPING
    assert record.process_id == running.process_id


@pytest.mark.asyncio
async def test_list_filters_by_status(lifecycle):
    first = await lifecycle.create(b"x", "https://a.test")
    await lifecycle.create(b"y", "https://b.test")
    await lifecycle.start(first.id)

    running = await lifecycle.list(IndexerStatus.RUNNING)
    everything = await lifecycle.list()

    assert [i.id for i in running] == [first.id]
    assert len(everything) == 2
