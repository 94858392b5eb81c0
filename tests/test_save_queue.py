"""Tests for the write serializer."""

import asyncio
import gc
import logging

import pytest

from boardstore.errors import SchemaViolationError, StorageError
from boardstore.models import Snapshot
from boardstore.services import QueueState, SaveQueue

TS = "2025-01-15T10:30:00+00:00"


def board_snapshot(title: str) -> Snapshot:
    return Snapshot.from_records(
        boards=[
            {
                "id": "b1",
                "title": title,
                "description": "",
                "columnIds": [],
                "createdAt": TS,
                "updatedAt": TS,
            }
        ]
    )


class RecordingWriter:
    """Writer that records what it wrote and how many writes overlapped."""

    def __init__(self, fail_on: str | None = None):
        self.written: list[str] = []
        self.active = 0
        self.max_active = 0
        self.fail_on = fail_on

    async def __call__(self, snapshot: Snapshot) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0)
            title = snapshot.boards["b1"]["title"] if snapshot.boards else ""
            if title == self.fail_on:
                raise StorageError(f"disk full writing {title}")
            self.written.append(title)
        finally:
            self.active -= 1


class TestSaveQueue:
    """Tests for ordering and exclusivity of saves."""

    @pytest.mark.asyncio
    async def test_single_save(self):
        writer = RecordingWriter()
        queue = SaveQueue(writer)

        report = await queue.save(board_snapshot("one"))

        assert writer.written == ["one"]
        assert report.snapshot.boards["b1"]["title"] == "one"
        assert queue.state is QueueState.IDLE

    @pytest.mark.asyncio
    async def test_saves_written_in_arrival_order(self):
        writer = RecordingWriter()
        queue = SaveQueue(writer)

        await asyncio.gather(*(queue.save(board_snapshot(str(i))) for i in range(5)))

        assert writer.written == ["0", "1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_one_write_in_flight(self):
        writer = RecordingWriter()
        queue = SaveQueue(writer)

        await asyncio.gather(*(queue.save(board_snapshot(str(i))) for i in range(5)))

        assert writer.max_active == 1

    @pytest.mark.asyncio
    async def test_saves_are_not_merged(self):
        writer = RecordingWriter()
        queue = SaveQueue(writer)

        await asyncio.gather(queue.save(board_snapshot("a")), queue.save(board_snapshot("a")))

        assert writer.written == ["a", "a"]

    @pytest.mark.asyncio
    async def test_state_while_flushing(self):
        writer = RecordingWriter()
        queue = SaveQueue(writer)

        task = asyncio.create_task(queue.save(board_snapshot("one")))
        await asyncio.sleep(0)

        assert queue.state is QueueState.FLUSHING
        await task
        assert queue.state is QueueState.IDLE
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_hard_violation_rejects_only_that_save(self):
        writer = RecordingWriter()
        queue = SaveQueue(writer)
        bad = Snapshot(boards={"b1": {"id": "b1"}})

        results = await asyncio.gather(
            queue.save(board_snapshot("before")),
            queue.save(bad),
            queue.save(board_snapshot("after")),
            return_exceptions=True,
        )

        assert isinstance(results[1], SchemaViolationError)
        assert writer.written == ["before", "after"]

    @pytest.mark.asyncio
    async def test_writer_failure_propagates(self):
        writer = RecordingWriter(fail_on="boom")
        queue = SaveQueue(writer)

        with pytest.raises(StorageError):
            await queue.save(board_snapshot("boom"))

        await queue.save(board_snapshot("fine"))
        assert writer.written == ["fine"]

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_save(self):
        writer = RecordingWriter()
        queue = SaveQueue(writer)

        task = asyncio.create_task(queue.save(board_snapshot("kept")))
        await asyncio.sleep(0)
        task.cancel()
        await queue.join()

        assert writer.written == ["kept"]

    @pytest.mark.asyncio
    async def test_join_when_idle(self):
        queue = SaveQueue(RecordingWriter())
        await queue.join()
        assert queue.state is QueueState.IDLE

    @pytest.mark.asyncio
    async def test_failure_after_caller_left_is_not_reported(
        self, caplog: pytest.LogCaptureFixture
    ):
        """A failed save nobody waits for does not leave an unretrieved exception."""
        queue = SaveQueue(RecordingWriter(fail_on="boom"))

        task = asyncio.create_task(queue.save(board_snapshot("boom")))
        await asyncio.sleep(0)
        task.cancel()
        with caplog.at_level(logging.ERROR, logger="asyncio"):
            await queue.join()
            del task
            gc.collect()

        assert "never retrieved" not in caplog.text
        assert queue.state is QueueState.IDLE
