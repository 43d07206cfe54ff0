"""
Per-file stability tracking.

A tracker debounces the change notifications for one path: every
notification re-arms a timer, and only when the timer runs out for the full
threshold without another notification (and the file still exists) is the
file reported as stable.
"""
import asyncio
import logging
from typing import Optional

import aiofiles.os

from stablewatch.core.exceptions import EventSinkClosedError, SubscriptionError
from .event_sink import EventSink, StabilityEvent
from .notification_source import ChangeNotificationSource, NotificationSubscription
from .shutdown import ShutdownSignal


class DebounceTimer:
    """
    Timer with at most one pending expiration.

    ``reset()`` follows stop, drain, re-arm: a fire that already happened
    but has not been consumed is cleared before the timer is armed again, so
    a stale fire can never be mistaken for the new one.
    """

    def __init__(self, duration_seconds: float):
        self.duration_seconds = duration_seconds
        self._fired = asyncio.Event()
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def fired(self) -> bool:
        return self._fired.is_set()

    @property
    def pending(self) -> bool:
        return self._handle is not None and not self.fired

    def arm(self) -> None:
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.duration_seconds, self._fire)

    def _fire(self) -> None:
        self._handle = None
        self._fired.set()

    def stop(self) -> bool:
        """Cancel the pending expiration. Returns False if the timer had already fired."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        return not self.fired

    def drain(self) -> None:
        self._fired.clear()

    def reset(self) -> None:
        if not self.stop():
            self.drain()
        self.arm()

    async def wait(self) -> None:
        await self._fired.wait()


class FileStabilityTracker:
    """Waits until one file stops changing, then emits a StabilityEvent for it."""

    def __init__(
        self,
        path: str,
        threshold_seconds: float,
        source: ChangeNotificationSource,
        shutdown: ShutdownSignal,
        sink: EventSink,
    ):
        self.path = path
        self.threshold_seconds = threshold_seconds
        self._source = source
        self._shutdown = shutdown
        self._sink = sink
        self.resets = 0

    async def run(self) -> None:
        try:
            subscription = await self._source.subscribe(self.path)
        except SubscriptionError as e:
            logging.warning(f"{e}, skipping")
            return

        timer = DebounceTimer(self.threshold_seconds)
        timer.arm()
        try:
            await self._debounce(subscription, timer)
        finally:
            timer.stop()
            subscription.close()

    async def _debounce(self, subscription: NotificationSubscription, timer: DebounceTimer) -> None:
        while True:
            shutdown_task = asyncio.ensure_future(self._shutdown.wait())
            change_task = asyncio.ensure_future(subscription.get())
            timer_task = asyncio.ensure_future(timer.wait())
            waiters = (shutdown_task, change_task, timer_task)
            try:
                await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            finally:
                for task in waiters:
                    task.cancel()

            if shutdown_task.done() and not shutdown_task.cancelled():
                logging.debug(f"Shutdown observed, no longer tracking {self.path}")
                return

            # A change seen in the same wakeup as the timer still counts as a reset.
            if change_task.done() and not change_task.cancelled():
                notification = change_task.result()
                self.resets += 1
                logging.debug(
                    f"{notification.operation.value} on {self.path}, "
                    f"restarting {self.threshold_seconds}s stability wait"
                )
                timer.reset()
                continue

            if timer_task.done() and not timer_task.cancelled():
                await self._emit_if_present()
                return

    async def _emit_if_present(self) -> None:
        try:
            await aiofiles.os.stat(self.path)
        except OSError as e:
            logging.warning(f"unable to stat {self.path}, skipping: {e}")
            return

        if self._shutdown.is_fired:
            logging.debug(f"Shutdown observed before {self.path} could be reported")
            return

        try:
            self._sink.put(StabilityEvent(path=self.path))
        except EventSinkClosedError as e:
            logging.debug(str(e))
            return
        logging.info(f"File is stable and ready: {self.path}")
