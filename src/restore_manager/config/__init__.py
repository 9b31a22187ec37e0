"""Configuration for the restore points manager."""

from .manager_config import (
    ManagerConfig,
    NotificationSettings,
    IntervalPolicy,
    CalendarPolicy,
    CreationPolicy,
    DayOfWeek,
    clamp_quota_percent,
    default_config_path,
    default_log_path,
    load_config,
    save_config,
)

__all__ = [
    "ManagerConfig",
    "NotificationSettings",
    "IntervalPolicy",
    "CalendarPolicy",
    "CreationPolicy",
    "DayOfWeek",
    "clamp_quota_percent",
    "default_config_path",
    "default_log_path",
    "load_config",
    "save_config",
]
