import asyncio
import logging
from typing import Any, Dict, Optional

from stablewatch.config import Settings
from stablewatch.core.events.event_bus import DomainEventBus
from stablewatch.core.events.file_events import FileStableEvent, WatcherStatusChangedEvent
from stablewatch.domains.file_discovery import StableFileWatcher, WatchdogNotificationSource
from stablewatch.domains.file_discovery.directory_monitor import SourceFactory


class WatcherService:
    """Runs a StableFileWatcher and republishes its events on the domain event bus."""

    def __init__(
        self,
        settings: Settings,
        event_bus: DomainEventBus,
        source_factory: SourceFactory = WatchdogNotificationSource,
    ):
        self.settings = settings
        self._event_bus = event_bus
        self._source_factory = source_factory
        self._watcher: Optional[StableFileWatcher] = None
        self._forward_task: Optional[asyncio.Task] = None
        self.stable_files_reported = 0

    @property
    def is_running(self) -> bool:
        return self._watcher is not None and not self._watcher.is_closed

    async def start(self) -> None:
        if self.is_running:
            logging.warning("Watcher is already running")
            return

        self._watcher = await StableFileWatcher.create(
            self.settings.watch_directory,
            self.settings.file_stable_time_seconds,
            source_factory=self._source_factory,
        )
        self._forward_task = asyncio.create_task(self._forward_events(self._watcher))
        await self._event_bus.publish(
            WatcherStatusChangedEvent(watch_directory=self._watcher.directory, is_watching=True)
        )

    async def stop(self) -> None:
        if not self.is_running:
            logging.warning("Watcher is not running")
            return

        watcher = self._watcher
        await watcher.close()
        if self._forward_task is not None:
            # events is closed by now, so the forwarder drains what is left and returns.
            await self._forward_task
            self._forward_task = None
        await self._event_bus.publish(
            WatcherStatusChangedEvent(watch_directory=watcher.directory, is_watching=False)
        )
        logging.info("Watcher stopped")

    async def _forward_events(self, watcher: StableFileWatcher) -> None:
        async for event in watcher.events:
            self.stable_files_reported += 1
            await self._event_bus.publish(
                FileStableEvent(file_path=event.path, detected_at=event.detected_at.isoformat())
            )

    def get_status(self) -> Dict[str, Any]:
        watcher = self._watcher
        return {
            "watch_directory": watcher.directory if watcher else self.settings.watch_directory,
            "stable_threshold_seconds": self.settings.file_stable_time_seconds,
            "running": self.is_running,
            "active_trackers": watcher.active_trackers if watcher else 0,
            "stable_files_reported": self.stable_files_reported,
        }
