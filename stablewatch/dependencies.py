from functools import lru_cache
from typing import Any, Dict

from .config import Settings
from .core.events.event_bus import DomainEventBus
from .domains.presentation.event_handlers import PresentationEventHandlers
from .domains.presentation.recent_events import RecentEventsStore
from .domains.presentation.websocket_manager import WebSocketManager
from .services.watcher_service import WatcherService

# Global singleton instances
_singletons: Dict[str, Any] = {}


@lru_cache
def get_settings() -> Settings:
    """Returns the Settings singleton instance."""
    return Settings()


def get_event_bus() -> DomainEventBus:
    if "event_bus" not in _singletons:
        _singletons["event_bus"] = DomainEventBus()
    return _singletons["event_bus"]


def get_websocket_manager() -> WebSocketManager:
    if "websocket_manager" not in _singletons:
        _singletons["websocket_manager"] = WebSocketManager()
    return _singletons["websocket_manager"]


def get_recent_events() -> RecentEventsStore:
    if "recent_events" not in _singletons:
        _singletons["recent_events"] = RecentEventsStore(limit=get_settings().recent_events_limit)
    return _singletons["recent_events"]


def get_presentation_event_handlers() -> PresentationEventHandlers:
    if "presentation_event_handlers" not in _singletons:
        _singletons["presentation_event_handlers"] = PresentationEventHandlers(
            websocket_manager=get_websocket_manager(),
            recent_events=get_recent_events(),
        )
    return _singletons["presentation_event_handlers"]


def get_watcher_service() -> WatcherService:
    if "watcher_service" not in _singletons:
        _singletons["watcher_service"] = WatcherService(
            settings=get_settings(),
            event_bus=get_event_bus(),
        )
    return _singletons["watcher_service"]


def reset_singletons() -> None:
    """Reset all singletons (used by tests)."""
    _singletons.clear()
    get_settings.cache_clear()
