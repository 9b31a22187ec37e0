"""Restore manager configuration: models, loading and persistence."""

import json
import logging
import os
from datetime import time
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigLoadError

logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()

ENV_PREFIX = "RESTORE_MANAGER_"
APP_DIR_NAME = "RestorePointsManager"

MIN_QUOTA_PERCENT = 8
MAX_QUOTA_PERCENT = 100


def clamp_quota_percent(value: int) -> int:
    """Clamp a disk quota percentage into the range the subsystem accepts."""
    return max(MIN_QUOTA_PERCENT, min(MAX_QUOTA_PERCENT, int(value)))


class DayOfWeek(str, Enum):
    """Days of the week, ordered as datetime.weekday()."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def index(self) -> int:
        return list(DayOfWeek).index(self)


class IntervalPolicy(BaseModel):
    """Create a checkpoint whenever the newest one is older than the interval."""

    frequency: Literal["interval"]
    interval_minutes: int = Field(default=1440, ge=1, description="Minimum age of newest checkpoint")


class CalendarPolicy(BaseModel):
    """Create checkpoints on a calendar rule at a fixed time of day."""

    frequency: Literal["hourly", "daily", "every_n_days", "weekly", "monthly", "yearly"]
    time_of_day: time = Field(default=time(0, 0), description="Local fire time")
    every_n_days: int = Field(default=1, ge=1)
    day_of_week: DayOfWeek = Field(default=DayOfWeek.SUNDAY)
    day_of_month: int = Field(default=1, ge=1, le=31)
    month: int = Field(default=1, ge=1, le=12)


CreationPolicy = Annotated[Union[IntervalPolicy, CalendarPolicy], Field(discriminator="frequency")]


class NotificationSettings(BaseModel):
    """Notification channel settings."""

    enabled: bool = Field(default=False, description="Send notifications beyond the log")
    notify_on_create: bool = Field(default=True)
    notify_on_delete: bool = Field(default=True)
    notify_on_apply: bool = Field(default=True)
    failures_only: bool = Field(default=False, description="Suppress success notifications")

    # Email
    smtp_host: Optional[str] = Field(default=None)
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_use_tls: bool = Field(default=True)
    smtp_username: Optional[str] = Field(default=None)
    smtp_password: Optional[str] = Field(
        default_factory=lambda: os.getenv(f"{ENV_PREFIX}SMTP_PASSWORD"),
        description="SMTP password (prefer the environment variable)",
    )
    sender: Optional[str] = Field(default=None)
    recipients: List[str] = Field(default_factory=list)
    smtp_timeout: float = Field(default=30.0, gt=0)

    # Webhook
    webhook_url: Optional[str] = Field(default=None)
    webhook_timeout: float = Field(default=10.0, gt=0)


def _default_policy() -> IntervalPolicy:
    return IntervalPolicy(frequency="interval", interval_minutes=1440)


class ManagerConfig(BaseModel):
    """Configuration for one host, immutable for the duration of a run."""

    disk_quota_percent: int = Field(default=10, description="Share of the system drive for checkpoints")
    minimum_count: int = Field(default=10, ge=1, description="Never prune below this many checkpoints")
    maximum_count: int = Field(default=20, ge=1, description="Prune when more than this many exist")
    schedule_enabled: bool = Field(default=True, description="Create checkpoints automatically")
    creation_policy: CreationPolicy = Field(default_factory=_default_policy)
    min_interframe_minutes: int = Field(
        default=60,
        ge=0,
        description="Minimum spacing between two creations (0 disables)",
    )
    description_prefix: str = Field(default="Scheduled restore point")
    time_zone: Optional[str] = Field(
        default=None,
        description="IANA zone for calendar schedules (default: host zone)",
    )

    log_path: Optional[str] = Field(default=None, description="Log file (default: next to config)")
    lock_timeout_seconds: float = Field(default=30.0, ge=0)

    scheduled_task_name: str = Field(default="RestorePointsManager")
    scheduled_task_interval_minutes: int = Field(default=10, ge=1)

    notifications: NotificationSettings = Field(default_factory=NotificationSettings)

    @field_validator("disk_quota_percent", mode="before")
    @classmethod
    def _clamp_quota(cls, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError("disk_quota_percent must be an integer")
        try:
            return clamp_quota_percent(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"disk_quota_percent must be an integer, got {value!r}") from e

    @field_validator("time_zone")
    @classmethod
    def _check_time_zone(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone {value!r}") from e
        return value

    @model_validator(mode="after")
    def _check_counts(self) -> "ManagerConfig":
        if self.minimum_count > self.maximum_count:
            raise ValueError(
                f"minimum_count ({self.minimum_count}) must not exceed "
                f"maximum_count ({self.maximum_count})"
            )
        return self

    def resolved_log_path(self, config_path: Optional[Path] = None) -> Path:
        """Log file location, defaulting to the config file's directory."""
        if self.log_path:
            return Path(self.log_path).expanduser()
        if config_path is not None:
            return Path(config_path).parent / "restore-points.log"
        return default_log_path()


def get_app_dir() -> Path:
    """
    Machine-wide application directory.

    Uses %ProgramData% on Windows and falls back to the user's home directory.

    Returns:
        Directory path (not created)
    """
    program_data = os.getenv("ProgramData")
    if program_data:
        return Path(program_data) / APP_DIR_NAME
    return Path.home() / f".{APP_DIR_NAME.lower()}"


def default_config_path() -> Path:
    return get_app_dir() / "config.yaml"


def default_log_path() -> Path:
    return get_app_dir() / "restore-points.log"


def _get_env_overrides() -> Dict[str, Any]:
    """
    Get configuration overrides from environment variables.

    Environment variables are prefixed with RESTORE_MANAGER_. A double
    underscore addresses a nested section, e.g.
    RESTORE_MANAGER_NOTIFICATIONS__SMTP_HOST -> notifications.smtp_host.

    Returns:
        Nested dictionary of overrides
    """
    overrides: Dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        config_key = key[len(ENV_PREFIX):].lower()
        if config_key == "smtp_password":
            # Read directly by NotificationSettings
            continue

        target = overrides
        parts = config_key.split("__")
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        # Left as text; field types do the coercion
        target[parts[-1]] = value

    return overrides


def _deep_merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_document(path: Path) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            document = json.load(f)
        else:
            document = yaml.safe_load(f)
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigLoadError(f"Config file {path} must contain a mapping, got {type(document).__name__}")
    return document


def load_config(config_path: Optional[Union[str, Path]] = None) -> ManagerConfig:
    """
    Load the manager configuration.

    Configuration is merged in this order (later overrides earlier):
    1. Default values
    2. The config file (YAML, or JSON when the suffix is .json)
    3. Environment variables (RESTORE_MANAGER_*)

    A missing config file is not an error: the built-in default is written
    to disk and used.

    Args:
        config_path: Config file path (default: default_config_path())

    Returns:
        Validated ManagerConfig

    Raises:
        ConfigLoadError: If the file cannot be parsed or fails validation
    """
    path = Path(config_path) if config_path else default_config_path()
    document: Dict[str, Any] = {}

    if path.exists():
        try:
            document = _read_document(path)
            logger.debug(f"Loaded config from {path}")
        except ConfigLoadError:
            raise
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigLoadError(f"Failed to read config from {path}: {e}") from e
    else:
        logger.info(f"No config at {path}; generating defaults")
        try:
            save_config(ManagerConfig(), path)
        except OSError as e:
            logger.warning(f"Could not write default config to {path}: {e}")

    document = _deep_merge(document, _get_env_overrides())

    try:
        return ManagerConfig(**document)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid configuration in {path}: {e}") from e


def save_config(config: ManagerConfig, path: Optional[Union[str, Path]] = None) -> Path:
    """
    Save configuration to file.

    The SMTP password is never written; it belongs in the environment.

    Args:
        config: Configuration to save
        path: Target path (default: default_config_path())

    Returns:
        The path written
    """
    target = Path(path) if path else default_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(mode="json", exclude_none=True)
    data.get("notifications", {}).pop("smtp_password", None)

    with open(target, "w", encoding="utf-8") as f:
        if target.suffix.lower() == ".json":
            json.dump(data, f, indent=2)
        else:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Saved config to {target}")
    return target
