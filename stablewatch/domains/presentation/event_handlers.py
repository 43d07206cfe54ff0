import logging

from stablewatch.core.events.file_events import FileStableEvent, WatcherStatusChangedEvent
from stablewatch.domains.presentation.recent_events import RecentEventsStore
from stablewatch.domains.presentation.websocket_manager import WebSocketManager


class PresentationEventHandlers:
    def __init__(self, websocket_manager: WebSocketManager, recent_events: RecentEventsStore):
        self.websocket_manager = websocket_manager
        self.recent_events = recent_events
        self._watcher_status = {"watching": False, "watch_directory": None}

    @property
    def watcher_status(self) -> dict:
        return dict(self._watcher_status)

    async def handle_file_stable_event(self, event: FileStableEvent) -> None:
        logging.debug(f"Received stable file event: {event.file_path}")
        self.recent_events.record(event.file_path, event.detected_at)
        self.websocket_manager.broadcast_message(
            {
                "type": "file_stable",
                "data": {
                    "file_path": event.file_path,
                    "detected_at": event.detected_at,
                    "timestamp": event.timestamp.isoformat(),
                },
            }
        )

    async def handle_watcher_status_event(self, event: WatcherStatusChangedEvent) -> None:
        self._watcher_status = {
            "watching": event.is_watching,
            "watch_directory": event.watch_directory,
        }
        self.websocket_manager.broadcast_message(
            {
                "type": "watcher_status",
                "data": {
                    **self._watcher_status,
                    "timestamp": event.timestamp.isoformat(),
                },
            }
        )
