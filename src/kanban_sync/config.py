"""Configuration management for kanban-sync."""

import json
import os
from pathlib import Path
from typing import Any, Literal, Optional

from loguru import logger
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kanban_sync.utils import setup_logging

DATA_DIR_NAME = ".kanban-sync"
CONFIG_FILE_NAME = "config.json"
WATCH_STATUS_JSON = "watch-status.json"

# On-disk layout names
BOARDS_DIR_NAME = "boards"
AGENDA_DIR_NAME = "agenda"
BOARD_FILENAME = "kanban.md"
COLUMN_METADATA_FILENAME = "column.md"
TASKS_DIR_NAME = "tasks"
MARKDOWN_EXTENSION = ".md"

Environment = Literal["test", "dev", "user"]


def _default_home() -> str:
    return str(Path(os.getenv("KANBAN_SYNC_HOME", Path.home() / "kanban")))


class WatchConfig(BaseModel):
    """Live watcher settings that can be changed while the watcher runs."""

    polling_interval: int = Field(default=5000, description="Base polling interval (ms)", gt=0)
    debounce_delay: int = Field(default=300, description="Quiet period before flushing (ms)", ge=0)
    enabled: bool = Field(default=True, description="Whether the watcher polls at all")


class KanbanSyncConfig(BaseSettings):
    """Pydantic model for kanban-sync global configuration."""

    env: Environment = Field(default="dev", description="Environment name")

    home: str = Field(
        default_factory=_default_home,
        description="Base data directory. Boards live in <home>/boards unless boards_directory is set.",
    )
    boards_directory: Optional[str] = Field(
        default=None,
        description="Custom boards root. Overrides <home>/boards when set.",
    )

    # overridden by ~/.kanban-sync/config.json
    log_level: str = "INFO"

    # Watch service configuration
    watch_enabled: bool = Field(default=True, description="Whether the file watcher polls")
    watch_polling_interval: int = Field(
        default=5000,
        description="Base milliseconds between directory scans. Activity snaps back to this value.",
        gt=0,
    )
    watch_min_polling_interval: int = Field(
        default=1000, description="Floor for the adaptive polling interval (ms)", gt=0
    )
    watch_max_polling_interval: int = Field(
        default=15000, description="Ceiling for the adaptive polling interval (ms)", gt=0
    )
    watch_idle_threshold: int = Field(
        default=60,
        description="Consecutive idle scans before the polling interval starts backing off",
        gt=0,
    )
    watch_backoff_factor: float = Field(
        default=1.5, description="Multiplier applied to the interval on each idle backoff", ge=1.0
    )
    sync_delay: int = Field(
        default=300, description="Milliseconds to wait after changes before dispatching events", ge=0
    )

    # Directory scanning
    scan_max_depth: int = Field(
        default=20, description="Maximum recursion depth for directory scans", gt=0
    )
    scan_yield_every: int = Field(
        default=100,
        description="Yield to the event loop after this many scanned entries",
        gt=0,
    )

    # Entity file resolution
    max_rename_retries: int = Field(
        default=100,
        description="Numbered suffixes tried before falling back to an id-based filename",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="KANBAN_SYNC_",
        extra="ignore",
    )

    @model_validator(mode="after")
    def check_polling_bounds(self) -> "KanbanSyncConfig":
        if self.watch_min_polling_interval > self.watch_max_polling_interval:
            raise ValueError(
                "watch_min_polling_interval must not exceed watch_max_polling_interval"
            )
        return self

    @property
    def is_test_env(self) -> bool:
        """Check if running in a test environment."""
        return (
            self.env == "test"
            or os.getenv("KANBAN_SYNC_ENV", "").lower() == "test"
            or os.getenv("PYTEST_CURRENT_TEST") is not None
        )

    @property
    def default_boards_path(self) -> Path:
        """Boards root when no custom directory is configured."""
        return Path(self.home) / BOARDS_DIR_NAME

    @property
    def boards_path(self) -> Path:
        """Root directory holding one subdirectory per board."""
        if self.boards_directory:
            return Path(self.boards_directory)
        return self.default_boards_path

    @property
    def agenda_path(self) -> Path:
        return self.boards_path / AGENDA_DIR_NAME

    @property
    def data_dir_path(self) -> Path:
        """Get app state directory for config, logs and watch status."""
        if config_dir := os.getenv("KANBAN_SYNC_CONFIG_DIR"):
            return Path(config_dir)

        home = os.getenv("HOME", Path.home())
        return Path(home) / DATA_DIR_NAME

    def watch_config(self) -> WatchConfig:
        """Build the live watcher settings from this configuration."""
        return WatchConfig(
            polling_interval=self.watch_polling_interval,
            debounce_delay=self.sync_delay,
            enabled=self.watch_enabled,
        )


# Module-level cache for configuration
_CONFIG_CACHE: Optional[KanbanSyncConfig] = None


class ConfigManager:
    """Manages kanban-sync configuration."""

    def __init__(self) -> None:
        home = os.getenv("HOME", Path.home())
        if isinstance(home, str):
            home = Path(home)

        # Allow override via environment variable
        if config_dir := os.getenv("KANBAN_SYNC_CONFIG_DIR"):
            self.config_dir = Path(config_dir)
        else:
            self.config_dir = home / DATA_DIR_NAME

        self.config_file = self.config_dir / CONFIG_FILE_NAME

        # Ensure config directory exists
        self.config_dir.mkdir(parents=True, exist_ok=True)

    @property
    def config(self) -> KanbanSyncConfig:
        """Get configuration, loading it lazily if needed."""
        return self.load_config()

    def load_config(self) -> KanbanSyncConfig:
        """Load configuration from file or create default.

        Environment variables take precedence over file config values.
        """
        global _CONFIG_CACHE

        if _CONFIG_CACHE is not None:
            return _CONFIG_CACHE

        if not self.config_file.exists():
            config = KanbanSyncConfig()
            self.save_config(config)
            return config

        try:
            file_data: dict[str, Any] = json.loads(self.config_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:  # pragma: no cover
            logger.error(f"Invalid JSON in config file {self.config_file}: {e}")
            raise SystemExit(
                f"Error: config file is not valid JSON: {self.config_file}\n"
                f"  {e}\n"
                f"Fix or delete the file and re-run."
            )

        # For fields that have env var overrides, drop the file value so pydantic reads the env
        merged_data = {
            key: value
            for key, value in file_data.items()
            if f"KANBAN_SYNC_{key.upper()}" not in os.environ
        }

        _CONFIG_CACHE = KanbanSyncConfig(**merged_data)
        return _CONFIG_CACHE

    def save_config(self, config: KanbanSyncConfig) -> None:
        """Save configuration to file and invalidate cache."""
        global _CONFIG_CACHE
        save_kanban_sync_config(self.config_file, config)
        _CONFIG_CACHE = None

    def set_boards_directory(self, path: str) -> Path:
        """Persist a custom boards root."""
        if not path or not path.strip():
            raise ValueError("Boards directory path cannot be empty")

        boards_path = Path(path).expanduser()
        config = self.load_config()
        config.boards_directory = str(boards_path)
        self.save_config(config)
        logger.info(f"Boards directory updated to: {boards_path}")
        return boards_path

    def reset_boards_directory(self) -> Path:
        """Drop the custom boards root and fall back to <home>/boards."""
        config = self.load_config()
        config.boards_directory = None
        self.save_config(config)
        logger.info("Boards directory reset to default")
        return config.default_boards_path


def save_kanban_sync_config(file_path: Path, config: KanbanSyncConfig) -> None:
    """Save configuration to file."""
    try:
        config_dict = config.model_dump(mode="json")
        file_path.write_text(json.dumps(config_dict, indent=2))
    except Exception as e:  # pragma: no cover
        logger.error(f"Failed to save config: {e}")


def init_cli_logging() -> None:  # pragma: no cover
    """Initialize logging for CLI commands - file only."""
    log_level = os.getenv("KANBAN_SYNC_LOG_LEVEL", "INFO")
    setup_logging(log_level=log_level, log_to_file=True)


def init_watch_logging() -> None:  # pragma: no cover
    """Initialize logging for the foreground watcher - file and stderr."""
    log_level = os.getenv("KANBAN_SYNC_LOG_LEVEL", "INFO")
    setup_logging(log_level=log_level, log_to_file=True, log_to_stdout=True)
