from collections import deque
from typing import Any, Deque, Dict, List


class RecentEventsStore:
    """Bounded, newest-first history of stable files for the API."""

    def __init__(self, limit: int = 100):
        self._events: Deque[Dict[str, Any]] = deque(maxlen=limit)

    def record(self, file_path: str, detected_at: str) -> None:
        self._events.appendleft({"file_path": file_path, "detected_at": detected_at})

    def list(self, limit: int | None = None) -> List[Dict[str, Any]]:
        events = list(self._events)
        if limit is not None:
            events = events[: max(limit, 0)]
        return events

    def __len__(self) -> int:
        return len(self._events)
