"""Tests for progress reporters."""

import asyncio

import pytest

from list_backup.backup.models import OperationProgress
from list_backup.backup.progress import (
    CallbackReporter,
    NullReporter,
    ProgressChannel,
    as_reporter,
    should_report,
)


def _event(n: int) -> OperationProgress:
    return OperationProgress(phase="Exporting", records_processed=n, records_total=10)


# ------------------------------------------------------------------
# as_reporter
# ------------------------------------------------------------------


class TestAsReporter:
    def test_none_gives_null_reporter(self):
        assert isinstance(as_reporter(None), NullReporter)

    def test_callable_wrapped(self):
        assert isinstance(as_reporter(lambda event: None), CallbackReporter)

    def test_reporter_passed_through(self):
        channel = ProgressChannel()
        assert as_reporter(channel) is channel


class TestNullReporter:
    async def test_keeps_only_last_event(self):
        reporter = NullReporter()
        assert reporter.last is None

        await reporter.publish(_event(1))
        await reporter.publish(_event(2))

        assert reporter.last.records_processed == 2


# ------------------------------------------------------------------
# CallbackReporter
# ------------------------------------------------------------------


class TestCallbackReporter:
    async def test_forwards_and_remembers_last(self):
        received = []
        reporter = CallbackReporter(received.append)

        await reporter.publish(_event(1))
        await reporter.publish(_event(2))

        assert [e.records_processed for e in received] == [1, 2]
        assert reporter.last.records_processed == 2

    async def test_callback_error_propagates(self):
        def boom(event):
            raise ValueError("ui gone")

        with pytest.raises(ValueError, match="ui gone"):
            await CallbackReporter(boom).publish(_event(1))


# ------------------------------------------------------------------
# ProgressChannel
# ------------------------------------------------------------------


class TestProgressChannel:
    async def test_iterates_until_closed(self):
        channel = ProgressChannel(maxsize=10)
        for n in range(3):
            await channel.publish(_event(n))
        await channel.close()

        assert [e.records_processed async for e in channel] == [0, 1, 2]
        assert channel.last.records_processed == 2

    async def test_publish_after_close_raises(self):
        channel = ProgressChannel()
        await channel.close()

        with pytest.raises(RuntimeError, match="closed"):
            await channel.publish(_event(1))

    async def test_close_is_idempotent(self):
        channel = ProgressChannel(maxsize=2)
        await channel.close()
        await channel.close()
        assert [e async for e in channel] == []

    async def test_full_channel_applies_backpressure(self):
        channel = ProgressChannel(maxsize=1)
        await channel.publish(_event(1))

        blocked = asyncio.create_task(channel.publish(_event(2)))
        await asyncio.sleep(0)
        assert not blocked.done()

        first = await channel.__anext__()
        await asyncio.wait_for(blocked, timeout=1)
        assert first.records_processed == 1

    async def test_concurrent_consumer(self):
        channel = ProgressChannel(maxsize=2)
        seen = []

        async def consume():
            async for event in channel:
                seen.append(event.records_processed)

        consumer = asyncio.create_task(consume())
        for n in range(10):
            await channel.publish(_event(n))
        await channel.close()
        await consumer

        assert seen == list(range(10))


# ------------------------------------------------------------------
# Cadence
# ------------------------------------------------------------------


class TestShouldReport:
    @pytest.mark.parametrize(
        "processed,total,expected",
        [
            (1, 45, False),
            (20, 45, True),
            (21, 45, False),
            (40, 45, True),
            (45, 45, True),
            (1, 1, True),
        ],
    )
    def test_every_twentieth_and_last(self, processed, total, expected):
        assert should_report(processed, total) is expected
