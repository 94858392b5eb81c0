"""Write serializer: applies snapshot saves one at a time, in arrival order."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from ..models.records import Snapshot
from .integrity import IntegrityChecker, IntegrityReport

logger = logging.getLogger(__name__)

SnapshotWriter = Callable[[Snapshot], Awaitable[None]]


def _consume_exception(future: asyncio.Future) -> None:
    # Marks a failure as seen when the caller is no longer waiting for it
    if not future.cancelled():
        future.exception()


class QueueState(str, Enum):
    """State of the save queue."""

    IDLE = "idle"
    FLUSHING = "flushing"


@dataclass
class _SaveTask:
    snapshot: Snapshot
    future: asyncio.Future[IntegrityReport]


class SaveQueue:
    """
    FIFO queue of full-snapshot saves with a single worker.

    Every save is checked by the integrity checker and then handed to the
    writer. Saves are never merged: two queued saves produce two writes,
    the later one overwriting the earlier. Only one save is being written
    at any time; the state flag guarantees it.

    Once queued, a save runs even if its caller stops waiting for it.
    """

    def __init__(self, writer: SnapshotWriter, checker: IntegrityChecker | None = None) -> None:
        """
        Initialize the queue.

        Args:
            writer: Coroutine function persisting a checked snapshot
            checker: Integrity checker run before each write
        """
        self._writer = writer
        self._checker = checker or IntegrityChecker()
        self._queue: deque[_SaveTask] = deque()
        self._state = QueueState.IDLE
        self._worker: asyncio.Task[None] | None = None

    @property
    def state(self) -> QueueState:
        return self._state

    @property
    def pending(self) -> int:
        """Number of saves waiting to be written."""
        return len(self._queue)

    async def save(self, snapshot: Snapshot) -> IntegrityReport:
        """
        Queue a snapshot and wait until it has been written.

        Returns:
            The integrity report of the written snapshot.

        Raises:
            SchemaViolationError: The snapshot failed the hard integrity tier.
            StorageError: The writer failed.
        """
        future: asyncio.Future[IntegrityReport] = asyncio.get_running_loop().create_future()
        future.add_done_callback(_consume_exception)
        self._queue.append(_SaveTask(snapshot, future))
        logger.debug("Save queued (pending=%d, state=%s)", len(self._queue), self._state.value)

        if self._state is QueueState.IDLE:
            self._state = QueueState.FLUSHING
            self._worker = asyncio.create_task(self._flush())

        return await asyncio.shield(future)

    async def join(self) -> None:
        """Wait until every queued save has been processed."""
        while self._worker is not None:
            await asyncio.shield(self._worker)

    async def _flush(self) -> None:
        try:
            while self._queue:
                task = self._queue.popleft()
                try:
                    report = self._checker.check(task.snapshot)
                    await self._writer(report.snapshot)
                except Exception as e:
                    logger.warning("Save rejected: %s", e)
                    if not task.future.done():
                        task.future.set_exception(e)
                else:
                    if not task.future.done():
                        task.future.set_result(report)
        finally:
            self._state = QueueState.IDLE
            self._worker = None
            logger.debug("Save queue idle")
