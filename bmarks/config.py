from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_DB_PATH = Path.home() / ".local" / "share" / "bookmarks" / "bookmark.db"
DEFAULT_EXPORT_PATH = "exported_bookmarks.html"


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None else v


@dataclass
class Settings:
    # Store
    db_path: str = str(DEFAULT_DB_PATH)
    busy_timeout_ms: int = 5000

    # Import
    import_workers: int = 5
    queue_size: int = 100

    # Export
    export_path: str = DEFAULT_EXPORT_PATH

    # Logging / UX
    log_level: str = "INFO"
    no_color: bool = False

    @staticmethod
    def from_env() -> "Settings":
        s = Settings()
        s.db_path = _env_str("BMARKS_DB_PATH", s.db_path)
        s.busy_timeout_ms = _env_int("BMARKS_BUSY_TIMEOUT_MS", s.busy_timeout_ms)

        s.import_workers = _env_int("BMARKS_IMPORT_WORKERS", s.import_workers)
        s.queue_size = _env_int("BMARKS_QUEUE_SIZE", s.queue_size)

        s.export_path = _env_str("BMARKS_EXPORT_PATH", s.export_path)

        s.log_level = _env_str("BMARKS_LOG_LEVEL", s.log_level)
        s.no_color = _env_bool("BMARKS_NO_COLOR", s.no_color)
        return s

    @staticmethod
    def from_file(path: Path) -> "Settings":
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        s = Settings.from_env()
        for k, v in data.items():
            if hasattr(s, k):
                setattr(s, k, v)
        return s

    @property
    def db_file(self) -> Path:
        return Path(self.db_path).expanduser()


def load_settings(config_path: Optional[str]) -> Settings:
    if config_path:
        return Settings.from_file(Path(config_path))
    return Settings.from_env()
