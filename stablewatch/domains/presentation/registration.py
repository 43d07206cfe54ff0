import logging

from stablewatch.core.events.event_bus import DomainEventBus
from stablewatch.core.events.file_events import FileStableEvent, WatcherStatusChangedEvent
from stablewatch.domains.presentation.event_handlers import PresentationEventHandlers


async def register_presentation_domain(event_bus: DomainEventBus, handlers: PresentationEventHandlers) -> None:
    """Subscribe the presentation handlers to the domain events they render."""
    await event_bus.subscribe(FileStableEvent, handlers.handle_file_stable_event)
    await event_bus.subscribe(WatcherStatusChangedEvent, handlers.handle_watcher_status_event)
    logging.info("Presentation event handlers registered")
