"""
Domain events published by the stable file watcher service.
"""

from dataclasses import dataclass

from stablewatch.core.events.domain_event import DomainEvent


@dataclass(frozen=True)
class FileStableEvent(DomainEvent):
    """Event published when a watched file has stopped changing and still exists."""

    file_path: str
    detected_at: str


@dataclass(frozen=True)
class WatcherStatusChangedEvent(DomainEvent):
    """Event published when the directory watcher starts or stops."""

    watch_directory: str
    is_watching: bool
