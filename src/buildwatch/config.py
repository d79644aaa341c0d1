"""Configuration for buildwatch."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    data_dir: Path = field(
        default_factory=lambda: Path.home() / ".local" / "share" / "buildwatch"
    )
    poll_interval: float = 20.0
    notification_gap: float = 5.0
    request_timeout: float = 30.0
    purge_after: float = 24 * 60 * 60
    purge_interval: float = 60 * 60

    @property
    def db_path(self) -> Path:
        return self.data_dir / "projects.db"
