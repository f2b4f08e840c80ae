"""Progress reporting for backup, restore and reset runs.

Engines publish ``OperationProgress`` events to a ``ProgressReporter``.
Two reporters are provided:

- ``CallbackReporter`` forwards each event to a plain callable, in the
  engine's own task.
- ``ProgressChannel`` is a bounded ``asyncio.Queue``.  ``publish`` waits
  for room, so a slow consumer slows the engine down instead of events
  piling up; the consumer iterates the channel with ``async for``.

Usage:
    channel = ProgressChannel(maxsize=10)

    async def render() -> None:
        async for event in channel:
            print(event.phase, event.records_processed)

    consumer = asyncio.create_task(render())
    try:
        await create_backup(records, snapshots, catalog, "me@example.com", progress=channel)
    finally:
        await channel.close()
    await consumer
"""

import asyncio
from collections.abc import Callable
from typing import Protocol

from list_backup.backup.models import OperationProgress

# Per-record progress is emitted every N records and on the last one
DEFAULT_PROGRESS_INTERVAL = 20


class ProgressReporter(Protocol):
    """Observer interface the engines publish progress events to."""

    async def publish(self, progress: OperationProgress) -> None:
        ...


class NullReporter:
    """Drops events, keeping only the most recent one in ``last``."""

    last: OperationProgress | None = None

    async def publish(self, progress: OperationProgress) -> None:
        self.last = progress


class CallbackReporter:
    """Adapts a synchronous callback to the ``ProgressReporter`` interface.

    Args:
        callback: Called with every event, synchronously.
    """

    def __init__(self, callback: Callable[[OperationProgress], None]) -> None:
        self._callback = callback
        self.last: OperationProgress | None = None

    async def publish(self, progress: OperationProgress) -> None:
        self.last = progress
        self._callback(progress)


_CLOSED = object()


class ProgressChannel:
    """Bounded async channel of progress events.

    Args:
        maxsize: Events buffered before ``publish`` starts waiting.
    """

    def __init__(self, maxsize: int = 100) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.last: OperationProgress | None = None

    async def publish(self, progress: OperationProgress) -> None:
        if self._closed:
            raise RuntimeError("Progress channel is closed")
        self.last = progress
        await self._queue.put(progress)

    async def close(self) -> None:
        """Signal the consumer that no more events will arrive."""
        if not self._closed:
            self._closed = True
            await self._queue.put(_CLOSED)

    def __aiter__(self) -> "ProgressChannel":
        return self

    async def __anext__(self) -> OperationProgress:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


ProgressArg = ProgressReporter | Callable[[OperationProgress], None] | None


def as_reporter(progress: ProgressArg) -> ProgressReporter:
    """Normalize an engine's ``progress`` argument to a reporter."""
    if progress is None:
        return NullReporter()
    if hasattr(progress, "publish"):
        return progress
    return CallbackReporter(progress)


def should_report(processed: int, total: int, interval: int = DEFAULT_PROGRESS_INTERVAL) -> bool:
    """True on every ``interval``-th record and on the last one."""
    return processed % interval == 0 or processed == total
