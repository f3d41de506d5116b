"""Durable message queue stored in the service database."""

import logging
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from indexer_service.domain.shared.error import QueueError
from indexer_service.domain.shared.port.message_queue import MessageQueue, QueueMessage
from indexer_service.infrastructure.persistence.errors import translate_errors
from indexer_service.infrastructure.persistence.tables import queue_messages_table as messages

logger = logging.getLogger(__name__)

PENDING = "pending"
DEAD = "dead"

# Attempts to claim a message that another consumer claimed first
_CLAIM_ATTEMPTS = 3


class SQLMessageQueue(MessageQueue):
    """MessageQueue backed by the ``queue_messages`` table.

    Receiving a message hides it for the visibility timeout and issues a new
    receipt. A message that is not deleted with its latest receipt becomes
    visible again; once it has been delivered ``max_receive_count`` times it is
    marked dead instead of being delivered again.

    Claims use FOR UPDATE SKIP LOCKED where the database supports it and are
    additionally guarded by a compare-and-set on ``receive_count``, so two
    consumers never hold the same delivery.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        visibility_timeout: float = 60.0,
        max_receive_count: int = 5,
    ) -> None:
        self._session_factory = session_factory
        self._visibility_timeout = visibility_timeout
        self._max_receive_count = max_receive_count

    async def send(self, queue: str, body: str) -> str:
        message_id = str(uuid4())
        now = datetime.now(UTC)
        stmt = insert(messages).values(
            id=message_id,
            queue=queue,
            body=body,
            status=PENDING,
            receive_count=0,
            receipt=None,
            visible_at=now,
            sent_at=now,
        )
        with translate_errors(f"send to queue {queue}", QueueError):
            async with self._session_factory.begin() as session:
                await session.execute(stmt)
        logger.debug(f"Sent message {message_id} to {queue}")
        return message_id

    async def receive(
        self, queue: str, visibility_timeout: float | None = None
    ) -> QueueMessage | None:
        timeout = visibility_timeout if visibility_timeout is not None else self._visibility_timeout
        now = datetime.now(UTC)

        with translate_errors(f"receive from queue {queue}", QueueError):
            async with self._session_factory.begin() as session:
                await self._dead_letter_exhausted(session, queue, now)

                for _ in range(_CLAIM_ATTEMPTS):
                    stmt = (
                        select(messages.c.id, messages.c.body, messages.c.receive_count)
                        .where(
                            messages.c.queue == queue,
                            messages.c.status == PENDING,
                            messages.c.visible_at <= now,
                        )
                        .order_by(messages.c.sent_at.asc(), messages.c.id.asc())
                        .limit(1)
                        .with_for_update(skip_locked=True)
                    )
                    row = (await session.execute(stmt)).first()
                    if row is None:
                        return None

                    message_id, body, receive_count = row
                    receipt = str(uuid4())
                    claim = (
                        update(messages)
                        .where(
                            messages.c.id == message_id,
                            messages.c.receive_count == receive_count,
                        )
                        .values(
                            receive_count=receive_count + 1,
                            receipt=receipt,
                            visible_at=now + timedelta(seconds=timeout),
                        )
                    )
                    result = await session.execute(claim)
                    if result.rowcount == 1:
                        return QueueMessage(
                            id=message_id,
                            queue=queue,
                            body=body,
                            receipt=receipt,
                            receive_count=receive_count + 1,
                        )
        return None

    async def delete(self, queue: str, message: QueueMessage) -> None:
        stmt = delete(messages).where(
            messages.c.queue == queue,
            messages.c.id == message.id,
            messages.c.receipt == message.receipt,
        )
        with translate_errors(f"delete from queue {queue}", QueueError):
            async with self._session_factory.begin() as session:
                result = await session.execute(stmt)
        if result.rowcount == 0:
            # Redelivered after the visibility timeout; the newer delivery owns it now
            logger.warning(f"Message {message.id} on {queue} was not deleted: receipt is stale")

    async def purge(self, queue: str) -> int:
        with translate_errors(f"purge queue {queue}", QueueError):
            async with self._session_factory.begin() as session:
                result = await session.execute(delete(messages).where(messages.c.queue == queue))
        count = result.rowcount
        logger.info(f"Purged {count} messages from {queue}")
        return count

    async def count(self, queue: str, status: str = PENDING) -> int:
        """Number of messages in ``queue`` with the given status."""
        stmt = select(messages.c.id).where(messages.c.queue == queue, messages.c.status == status)
        with translate_errors(f"count queue {queue}", QueueError):
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        return len(rows)

    async def _dead_letter_exhausted(
        self, session: AsyncSession, queue: str, now: datetime
    ) -> None:
        stmt = (
            update(messages)
            .where(
                messages.c.queue == queue,
                messages.c.status == PENDING,
                messages.c.visible_at <= now,
                messages.c.receive_count >= self._max_receive_count,
            )
            .values(status=DEAD)
        )
        result = await session.execute(stmt)
        if result.rowcount:
            logger.warning(
                f"Dead-lettered {result.rowcount} message(s) on {queue} after "
                f"{self._max_receive_count} deliveries"
            )
