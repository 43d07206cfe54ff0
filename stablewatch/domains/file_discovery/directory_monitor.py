"""
Directory monitoring and the public StableFileWatcher.

The monitor discovers files that already exist at startup and files created
afterwards, and starts one FileStabilityTracker per discovery. Trackers run
independently and report to a shared EventSink.
"""
import asyncio
import logging
import os
from typing import Callable, List, Optional, Set

import aiofiles.os

from stablewatch.core.exceptions import (
    DirectoryListingError,
    NotificationSourceError,
    StableWatcherError,
)
from .event_sink import EventSink
from .notification_source import (
    ChangeNotificationSource,
    ChangeOperation,
    WatchdogNotificationSource,
)
from .shutdown import ShutdownSignal
from .stability_tracker import FileStabilityTracker

SourceFactory = Callable[[], ChangeNotificationSource]


class DirectoryMonitor:
    def __init__(
        self,
        directory: str,
        threshold_seconds: float,
        source: ChangeNotificationSource,
        shutdown: ShutdownSignal,
        sink: EventSink,
    ):
        self.directory = os.path.abspath(directory)
        self.threshold_seconds = threshold_seconds
        self._source = source
        self._shutdown = shutdown
        self._sink = sink
        # Strong references only; tracker tasks are never awaited here.
        self._tracker_tasks: Set[asyncio.Task] = set()

    @property
    def active_trackers(self) -> int:
        return len(self._tracker_tasks)

    async def list_existing_files(self) -> List[str]:
        """List the regular files present in the directory right now."""
        try:
            names = await aiofiles.os.listdir(self.directory)
        except OSError as e:
            raise DirectoryListingError(self.directory, str(e)) from e

        files = []
        for name in sorted(names):
            path = os.path.join(self.directory, name)
            if await aiofiles.os.path.isdir(path):
                continue
            logging.info(f"Found existing file: {name}")
            files.append(path)
        return files

    def spawn_tracker(self, path: str) -> asyncio.Task:
        tracker = FileStabilityTracker(
            path=path,
            threshold_seconds=self.threshold_seconds,
            source=self._source,
            shutdown=self._shutdown,
            sink=self._sink,
        )
        task = asyncio.create_task(tracker.run(), name=f"stability-tracker:{path}")
        self._tracker_tasks.add(task)
        task.add_done_callback(self._tracker_done)
        return task

    def _tracker_done(self, task: asyncio.Task) -> None:
        self._tracker_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logging.error(f"Tracker {task.get_name()} failed: {task.exception()}")

    async def start(self, preexisting: List[str]) -> None:
        """Track the pre-existing files, then follow new files until shutdown."""
        # Files present at startup may still be mid-write.
        for path in preexisting:
            self.spawn_tracker(path)

        try:
            while True:
                shutdown_task = asyncio.ensure_future(self._shutdown.wait())
                notification_task = asyncio.ensure_future(self._source.notifications.get())
                waiters = (shutdown_task, notification_task)
                try:
                    await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    for task in waiters:
                        task.cancel()

                if shutdown_task.done() and not shutdown_task.cancelled():
                    return

                notification = notification_task.result()
                if notification.operation is ChangeOperation.CREATE and not notification.is_directory:
                    logging.info(f"New file discovered: {os.path.basename(notification.path)}")
                    self.spawn_tracker(notification.path)
        finally:
            self._sink.close()
            logging.info(f"Stopped monitoring {self.directory}")


class StableFileWatcher:
    """
    Watches a directory and reports files once they have been completely written.

    A file counts as complete once no change notification has arrived for
    ``stable_threshold_seconds`` and it still exists. Use ``create()`` to
    construct one, iterate ``events`` for the results and ``close()`` it to
    stop.
    """

    def __init__(
        self,
        directory: str,
        stable_threshold_seconds: float,
        source: ChangeNotificationSource,
    ):
        self.directory = os.path.abspath(directory)
        self.stable_threshold_seconds = stable_threshold_seconds
        self.events = EventSink()
        self._source = source
        self._shutdown = ShutdownSignal()
        self._monitor = DirectoryMonitor(
            directory=self.directory,
            threshold_seconds=stable_threshold_seconds,
            source=source,
            shutdown=self._shutdown,
            sink=self.events,
        )
        self._monitor_task: Optional[asyncio.Task] = None
        self._closed = False

    @classmethod
    async def create(
        cls,
        directory: str,
        stable_threshold_seconds: float,
        source_factory: SourceFactory = WatchdogNotificationSource,
    ) -> "StableFileWatcher":
        if stable_threshold_seconds < 0:
            raise ValueError(f"stable threshold must not be negative, got {stable_threshold_seconds}")

        try:
            source = source_factory()
        except Exception as e:
            raise NotificationSourceError("unable to create a file system watcher") from e

        watcher = cls(directory, stable_threshold_seconds, source)
        try:
            existing_files = await watcher._monitor.list_existing_files()
            await source.add(watcher.directory)
        except StableWatcherError:
            await source.close()
            raise

        watcher._monitor_task = asyncio.create_task(
            watcher._monitor.start(existing_files), name=f"directory-monitor:{watcher.directory}"
        )
        logging.info(
            f"Watching {watcher.directory} for stable files "
            f"(threshold {stable_threshold_seconds}s, {len(existing_files)} existing)"
        )
        return watcher

    @property
    def active_trackers(self) -> int:
        return self._monitor.active_trackers

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Stop watching. ``events`` is closed once this returns."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._source.close()
        finally:
            self._shutdown.fire()
            if self._monitor_task is not None:
                await self._monitor_task

    async def __aenter__(self) -> "StableFileWatcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
