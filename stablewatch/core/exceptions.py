# stablewatch/core/exceptions.py


class StableWatcherError(Exception):
    """Base class for all errors raised by the stable file watcher."""


class NotificationSourceError(StableWatcherError):
    """Raised when the file system notification source cannot be created."""


class DirectoryListingError(StableWatcherError):
    """Raised when the watch directory cannot be listed at startup."""
    def __init__(self, directory: str, reason: str):
        self.directory = directory
        super().__init__(f"unable to list {directory}: {reason}")


class WatchRegistrationError(StableWatcherError):
    """Raised when a path cannot be registered with the notification source."""
    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"unable to start watching {path}: {reason}")


class SubscriptionError(StableWatcherError):
    """Raised when a path-scoped notification subscription cannot be acquired."""
    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"unable to watch {path}: {reason}")


class EventSinkClosedError(StableWatcherError):
    """Raised when writing to, or closing, an event sink that is already closed."""
