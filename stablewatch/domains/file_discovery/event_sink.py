"""
Output channel for stability events.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from stablewatch.core.exceptions import EventSinkClosedError


@dataclass(frozen=True)
class StabilityEvent:
    """Signals that a file in the watch directory is ready to be processed."""

    path: str
    detected_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc), compare=False
    )


_END_OF_STREAM = object()


class EventSink:
    """
    Unbounded event queue written by many trackers and closed exactly once.

    Readers get ``None`` from ``get()`` once the sink is closed and every
    queued event has been consumed. The end-of-stream marker is put back
    after each read so any number of readers observe it.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def put(self, event: StabilityEvent) -> None:
        if self._closed:
            raise EventSinkClosedError(f"event sink closed, dropping event for {event.path}")
        self._queue.put_nowait(event)

    def close(self) -> None:
        if self._closed:
            raise EventSinkClosedError("event sink already closed")
        self._closed = True
        self._queue.put_nowait(_END_OF_STREAM)

    async def get(self) -> Optional[StabilityEvent]:
        item = await self._queue.get()
        if item is _END_OF_STREAM:
            self._queue.put_nowait(_END_OF_STREAM)
            return None
        return item

    def __aiter__(self) -> AsyncIterator[StabilityEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[StabilityEvent]:
        while True:
            event = await self.get()
            if event is None:
                return
            yield event
