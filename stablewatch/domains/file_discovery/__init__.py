"""
File Discovery Domain
Detects when files written into a watched directory have stopped changing.
"""
from .directory_monitor import DirectoryMonitor, StableFileWatcher
from .event_sink import EventSink, StabilityEvent
from .notification_source import (
    ChangeNotification,
    ChangeNotificationSource,
    ChangeOperation,
    NotificationSubscription,
    WatchdogNotificationSource,
)
from .shutdown import ShutdownSignal
from .stability_tracker import DebounceTimer, FileStabilityTracker

__all__ = [
    "ChangeNotification",
    "ChangeNotificationSource",
    "ChangeOperation",
    "DebounceTimer",
    "DirectoryMonitor",
    "EventSink",
    "FileStabilityTracker",
    "NotificationSubscription",
    "ShutdownSignal",
    "StabilityEvent",
    "StableFileWatcher",
    "WatchdogNotificationSource",
]
