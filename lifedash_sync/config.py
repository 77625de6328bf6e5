"""Configuration management for LifeDashboard Sync."""

import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional

from platformdirs import user_config_dir, user_data_dir, user_log_dir

__all__ = [
    "Config",
    "SyncSettings",
    "ActivityWatchSettings",
    "setup_logging",
    "DEFAULT_API_URL",
    "SYNC_HISTORY_LIMIT",
]

logger = logging.getLogger(__name__)

APP_NAME = "LifeDashboard Sync"
APP_AUTHOR = "LifeDashboard"

DEFAULT_API_URL = "https://lifedashboard.vercel.app/api"

# ActivityWatch defaults
DEFAULT_AW_HOST = "localhost"
DEFAULT_AW_PORT = 5600

# Sync settings
DEFAULT_SYNC_INTERVAL_MINUTES = 5
MIN_SYNC_INTERVAL_MINUTES = 1
DEFAULT_LOOKBACK_DAYS = 7  # today + the six previous days
SYNC_HISTORY_LIMIT = 300

# Foreground transitions of this surface mark a screen unlock
DEFAULT_SYSTEM_UI_APP = "com.android.systemui"


@dataclass
class SyncSettings:
    """Sync configuration."""

    interval_minutes: int = DEFAULT_SYNC_INTERVAL_MINUTES
    lookback_days: int = DEFAULT_LOOKBACK_DAYS
    request_timeout: int = 30  # seconds


@dataclass
class ActivityWatchSettings:
    """ActivityWatch connection settings."""

    host: str = DEFAULT_AW_HOST
    port: int = DEFAULT_AW_PORT

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


@dataclass
class Config:
    """Main configuration object."""

    api_url: str = DEFAULT_API_URL
    aw: ActivityWatchSettings = field(default_factory=ActivityWatchSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    system_ui_app: str = DEFAULT_SYSTEM_UI_APP
    app_labels: dict[str, str] = field(default_factory=dict)
    debug_mode: bool = False

    @classmethod
    def get_config_dir(cls) -> Path:
        """Get the configuration directory path."""
        return Path(user_config_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_data_dir(cls) -> Path:
        """Get the data directory path (for the sync history database)."""
        return Path(user_data_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_log_dir(cls) -> Path:
        """Get the log directory path."""
        return Path(user_log_dir(APP_NAME, APP_AUTHOR))

    @classmethod
    def get_config_file(cls) -> Path:
        """Get the config file path."""
        return cls.get_config_dir() / "config.json"

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "Config":
        """Load config from file, or return defaults."""
        config_file = config_file or cls.get_config_file()
        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    data = json.load(f)
                return cls._from_dict(data)
            except Exception as e:
                logger.warning(f"Failed to load config: {e}, using defaults")
        return cls()

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create Config from dictionary."""
        aw_data = data.pop("aw", {})
        sync_data = data.pop("sync", {})

        sync = SyncSettings(
            **{k: v for k, v in sync_data.items() if k in SyncSettings.__dataclass_fields__}
        )
        sync.interval_minutes = max(MIN_SYNC_INTERVAL_MINUTES, int(sync.interval_minutes))
        sync.lookback_days = max(1, int(sync.lookback_days))

        return cls(
            aw=ActivityWatchSettings(
                **{k: v for k, v in aw_data.items() if k in ActivityWatchSettings.__dataclass_fields__}
            ),
            sync=sync,
            **{k: v for k, v in data.items() if k in cls.__dataclass_fields__},
        )

    def save(self, config_file: Optional[Path] = None) -> None:
        """Save config to file."""
        config_file = config_file or self.get_config_file()
        config_file.parent.mkdir(parents=True, exist_ok=True)

        data = asdict(self)
        with open(config_file, "w") as f:
            json.dump(data, f, indent=2)
        logger.info(f"Config saved to {config_file}")

    def resolve_app_name(self, app_id: str) -> str:
        """Map an app identifier to its display name.

        Uses the configured label when present, otherwise the last dotted
        segment of the identifier ("com.example.mail" -> "mail").
        """
        label = self.app_labels.get(app_id)
        if label:
            return label
        return app_id.rsplit(".", 1)[-1] or app_id


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    log_dir = Config.get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "lifedash-sync.log"

    level = logging.DEBUG if debug else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
