"""
Change notification sources.

A source delivers every notification for its watched directory on a single
directory-level queue and, in addition, demultiplexes each notification by
path to the subscriptions that trackers hold for individual files.
"""
import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import aiofiles.os
from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from stablewatch.core.exceptions import SubscriptionError, WatchRegistrationError


class ChangeOperation(str, Enum):
    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"
    OTHER = "other"


@dataclass(frozen=True)
class ChangeNotification:
    """A single raw file system change for an absolute path."""

    path: str
    operation: ChangeOperation
    is_directory: bool = False


class NotificationSubscription:
    """Notifications for exactly one path, owned by a single tracker."""

    def __init__(self, source: "ChangeNotificationSource", path: str):
        self.path = path
        self._source = source
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def deliver(self, notification: ChangeNotification) -> None:
        if not self._closed:
            self._queue.put_nowait(notification)

    async def get(self) -> ChangeNotification:
        return await self._queue.get()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._source._unsubscribe(self)


class ChangeNotificationSource(ABC):
    """
    Base class for notification sources.

    Subclasses register paths with the underlying mechanism in ``add()``,
    release it in ``_release()``, and feed raw changes into ``dispatch()``.
    """

    def __init__(self) -> None:
        self.notifications: asyncio.Queue = asyncio.Queue()
        self._subscriptions: Dict[str, List[NotificationSubscription]] = {}
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @abstractmethod
    async def add(self, path: str) -> None:
        """Begin receiving notifications for a path."""

    @abstractmethod
    async def _release(self) -> None:
        """Stop the underlying mechanism and free its resources."""

    async def subscribe(self, path: str) -> NotificationSubscription:
        path = os.path.abspath(path)
        if self._closed:
            raise SubscriptionError(path, "notification source is closed")

        try:
            await aiofiles.os.stat(path)
        except OSError as e:
            raise SubscriptionError(path, str(e)) from e

        subscription = NotificationSubscription(self, path)
        self._subscriptions.setdefault(path, []).append(subscription)
        logging.debug(f"Subscribed to notifications for {path}")
        return subscription

    def _unsubscribe(self, subscription: NotificationSubscription) -> None:
        subscriptions = self._subscriptions.get(subscription.path)
        if not subscriptions:
            return
        if subscription in subscriptions:
            subscriptions.remove(subscription)
        if not subscriptions:
            del self._subscriptions[subscription.path]

    def subscription_count(self, path: Optional[str] = None) -> int:
        if path is not None:
            return len(self._subscriptions.get(os.path.abspath(path), []))
        return sum(len(subs) for subs in self._subscriptions.values())

    def dispatch(self, notification: ChangeNotification) -> None:
        if self._closed:
            return
        self.notifications.put_nowait(notification)
        for subscription in list(self._subscriptions.get(notification.path, [])):
            subscription.deliver(notification)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._release()


# Access-only events (opened, closed_no_write) are not changes and map to nothing.
_OPERATIONS = {
    EVENT_TYPE_CREATED: ChangeOperation.CREATE,
    EVENT_TYPE_MODIFIED: ChangeOperation.WRITE,
    EVENT_TYPE_DELETED: ChangeOperation.REMOVE,
    EVENT_TYPE_MOVED: ChangeOperation.RENAME,
    EVENT_TYPE_CLOSED: ChangeOperation.OTHER,
}


def to_notifications(event: FileSystemEvent) -> List[ChangeNotification]:
    """Translate a watchdog event into zero or more change notifications."""
    operation = _OPERATIONS.get(event.event_type)
    if operation is None:
        return []

    src_path = os.path.abspath(os.fsdecode(event.src_path))
    notifications = [ChangeNotification(src_path, operation, event.is_directory)]

    # A file moved into place shows up as a new file at its destination.
    dest_path = getattr(event, "dest_path", "")
    if operation is ChangeOperation.RENAME and dest_path:
        notifications.append(
            ChangeNotification(
                os.path.abspath(os.fsdecode(dest_path)),
                ChangeOperation.CREATE,
                event.is_directory,
            )
        )
    return notifications


class _WatchdogEventHandler(FileSystemEventHandler):
    """Runs on watchdog's observer thread; hands events over to the event loop."""

    def __init__(self, source: "WatchdogNotificationSource"):
        super().__init__()
        self._source = source

    def on_any_event(self, event: FileSystemEvent) -> None:
        for notification in to_notifications(event):
            self._source.dispatch_threadsafe(notification)


class WatchdogNotificationSource(ChangeNotificationSource):
    """Notification source backed by a watchdog ``Observer``."""

    def __init__(self, join_timeout_seconds: float = 5.0) -> None:
        super().__init__()
        self._loop = asyncio.get_running_loop()
        self._join_timeout_seconds = join_timeout_seconds
        self._handler = _WatchdogEventHandler(self)
        self._observer = Observer()
        self._observer.daemon = True
        self._observer.start()
        logging.debug(f"Started {type(self._observer).__name__} for change notifications")

    async def add(self, path: str) -> None:
        path = os.path.abspath(path)
        try:
            self._observer.schedule(self._handler, path, recursive=False)
        except OSError as e:
            raise WatchRegistrationError(path, str(e)) from e
        logging.debug(f"Registered watch for {path}")

    def dispatch_threadsafe(self, notification: ChangeNotification) -> None:
        if self._closed or self._loop.is_closed():
            return
        try:
            self._loop.call_soon_threadsafe(self.dispatch, notification)
        except RuntimeError:
            logging.debug(f"Event loop closed, dropping {notification.operation.value} for {notification.path}")

    async def _release(self) -> None:
        self._observer.stop()
        await asyncio.to_thread(self._observer.join, self._join_timeout_seconds)
        if self._observer.is_alive():
            logging.warning("Notification observer thread did not stop within timeout")
