from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Watched directory
    watch_directory: str

    # Timing: quiet period before a file counts as stable
    file_stable_time_seconds: float = 120.0

    # Logging
    log_level: str = "INFO"
    log_file_path: str = "logs/stablewatch.log"
    log_retention_days: int = 30

    # Presentation
    recent_events_limit: int = 100  # Stability events kept for /api/events/recent

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(env_file="settings.env", extra="ignore")

    @property
    def log_directory(self) -> Path:
        """Returns the log directory as a Path."""
        return Path(self.log_file_path).parent
