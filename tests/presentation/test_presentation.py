"""
Tests for the presentation layer: event handlers, recent events and WebSocket broadcasting.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import WebSocketDisconnect

from stablewatch.core.events.file_events import FileStableEvent, WatcherStatusChangedEvent
from stablewatch.domains.presentation.event_handlers import PresentationEventHandlers
from stablewatch.domains.presentation.recent_events import RecentEventsStore
from stablewatch.domains.presentation.websocket_manager import WebSocketManager


@pytest.fixture
def mock_websocket_manager():
    return MagicMock(spec=WebSocketManager)


@pytest.fixture
def handlers(mock_websocket_manager):
    return PresentationEventHandlers(mock_websocket_manager, RecentEventsStore(limit=2))


class TestPresentationEventHandlers:
    @pytest.mark.asyncio
    async def test_stable_file_is_recorded_and_broadcast(self, handlers, mock_websocket_manager):
        event = FileStableEvent(file_path="/in/a.mp4", detected_at="2024-01-01T00:00:00+00:00")

        await handlers.handle_file_stable_event(event)

        assert handlers.recent_events.list() == [
            {"file_path": "/in/a.mp4", "detected_at": "2024-01-01T00:00:00+00:00"}
        ]
        mock_websocket_manager.broadcast_message.assert_called_once()
        message = mock_websocket_manager.broadcast_message.call_args[0][0]
        assert message["type"] == "file_stable"
        assert message["data"]["file_path"] == "/in/a.mp4"

    @pytest.mark.asyncio
    async def test_watcher_status_is_tracked_and_broadcast(self, handlers, mock_websocket_manager):
        await handlers.handle_watcher_status_event(
            WatcherStatusChangedEvent(watch_directory="/in", is_watching=True)
        )

        assert handlers.watcher_status == {"watching": True, "watch_directory": "/in"}
        message = mock_websocket_manager.broadcast_message.call_args[0][0]
        assert message["type"] == "watcher_status"
        assert message["data"]["watching"] is True


class TestRecentEventsStore:
    def test_newest_first_and_bounded(self):
        store = RecentEventsStore(limit=2)
        store.record("/in/a.mp4", "t1")
        store.record("/in/b.mp4", "t2")
        store.record("/in/c.mp4", "t3")

        assert len(store) == 2
        assert [e["file_path"] for e in store.list()] == ["/in/c.mp4", "/in/b.mp4"]
        assert [e["file_path"] for e in store.list(1)] == ["/in/c.mp4"]


class TestWebSocketManager:
    @pytest.mark.asyncio
    async def test_broadcast_sends_json_to_every_connection(self):
        manager = WebSocketManager()
        first, second = AsyncMock(), AsyncMock()
        await manager.connect(first)
        await manager.connect(second)

        await manager._broadcast_to_connections({"type": "file_stable"})

        first.accept.assert_awaited_once()
        first.send_text.assert_awaited_once_with(json.dumps({"type": "file_stable"}))
        second.send_text.assert_awaited_once_with(json.dumps({"type": "file_stable"}))

    @pytest.mark.asyncio
    async def test_disconnected_clients_are_dropped(self):
        manager = WebSocketManager()
        gone, alive = AsyncMock(), AsyncMock()
        gone.send_text.side_effect = WebSocketDisconnect()
        await manager.connect(gone)
        await manager.connect(alive)

        await manager._broadcast_to_connections({"type": "file_stable"})

        assert manager.connection_count == 1
        alive.send_text.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sender_task_delivers_queued_messages(self):
        manager = WebSocketManager()
        client = AsyncMock()
        await manager.connect(client)
        manager.start_sender_task()

        manager.broadcast_message({"type": "watcher_status"})
        await manager._message_queue.join()
        await manager.stop_sender_task()

        client.send_text.assert_awaited_once_with(json.dumps({"type": "watcher_status"}))
