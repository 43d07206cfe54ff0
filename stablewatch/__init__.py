from .domains.file_discovery import StabilityEvent, StableFileWatcher

__all__ = ["StabilityEvent", "StableFileWatcher"]
