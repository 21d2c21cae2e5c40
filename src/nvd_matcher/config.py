"""Runtime settings for nvd-matcher.

Settings come from ``config/settings.json`` (project root first, then the
current directory) and can be overridden with environment variables:

    NVD_MATCHER_DB        SQLite database path
    NVD_PAGE_DELAY        seconds to wait between NVD pages
    NVD_RESULTS_PER_PAGE  page size requested from the NVD API
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_DB_PATH = PROJECT_ROOT / "data" / "nvd.db"

# NVD asks unauthenticated clients to wait 6 seconds between requests
DEFAULT_PAGE_DELAY = 6.0
DEFAULT_CVE_RESOLUTION_WORKERS = 8


@dataclass
class Settings:
    """Resolved configuration values."""

    db_path: Path = DEFAULT_DB_PATH
    page_delay: float = DEFAULT_PAGE_DELAY
    results_per_page: Optional[int] = None
    request_timeout: int = 60
    parallelism: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """Create from the parsed settings file."""
        nvd = data.get("nvd", {})
        database = data.get("database", {})
        return cls(
            db_path=Path(database.get("path", DEFAULT_DB_PATH)),
            page_delay=float(nvd.get("page_delay_seconds", DEFAULT_PAGE_DELAY)),
            results_per_page=nvd.get("results_per_page"),
            request_timeout=int(nvd.get("timeout", 60)),
            parallelism=data.get("parallelism", {}),
        )

    def apply_env(self) -> "Settings":
        """Override values from environment variables."""
        if os.environ.get("NVD_MATCHER_DB"):
            self.db_path = Path(os.environ["NVD_MATCHER_DB"])
        if os.environ.get("NVD_PAGE_DELAY"):
            try:
                self.page_delay = float(os.environ["NVD_PAGE_DELAY"])
            except ValueError:
                logger.warning(f"Ignoring invalid NVD_PAGE_DELAY: {os.environ['NVD_PAGE_DELAY']}")
        if os.environ.get("NVD_RESULTS_PER_PAGE"):
            try:
                self.results_per_page = int(os.environ["NVD_RESULTS_PER_PAGE"])
            except ValueError:
                logger.warning(
                    f"Ignoring invalid NVD_RESULTS_PER_PAGE: {os.environ['NVD_RESULTS_PER_PAGE']}"
                )
        return self


def _load_settings_file() -> dict[str, Any]:
    """Load config/settings.json if one exists."""
    config_paths = [
        PROJECT_ROOT / "config" / "settings.json",
        Path("config/settings.json"),
    ]

    for config_path in config_paths:
        if config_path.exists():
            try:
                with open(config_path) as f:
                    return json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Failed to load settings from {config_path}: {e}")

    return {}


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get settings (lazy loaded)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_dict(_load_settings_file()).apply_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call reloads them."""
    global _settings
    _settings = None


def get_workers(key: str, default: int) -> int:
    """Get worker count from config or use default."""
    config = get_settings().parallelism
    if not config.get("enabled", True):
        return 1  # Disable parallelism by returning 1 worker
    return int(config.get(key, default))
