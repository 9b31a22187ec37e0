"""Interactive configuration editor.

Any front end that produces a ManagerConfig is interchangeable with this
one; editing the YAML file by hand works just as well.
"""

import logging
from datetime import time
from typing import Any, Callable, Dict, Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .manager_config import DayOfWeek, ManagerConfig

logger = logging.getLogger(__name__)

FREQUENCIES = ["interval", "hourly", "daily", "every_n_days", "weekly", "monthly", "yearly"]


def _parse_time(value: str) -> time:
    return time.fromisoformat(value.strip())


class ConfigEditor:
    """
    Prompts for every setting, starting from an existing configuration.

    Args:
        prompt: click.prompt compatible callable
        confirm: click.confirm compatible callable
        console: Rich console for the review table
    """

    def __init__(
        self,
        prompt: Callable[..., Any] = click.prompt,
        confirm: Callable[..., bool] = click.confirm,
        console: Optional[Console] = None,
    ):
        self.prompt = prompt
        self.confirm = confirm
        self.console = console or Console()

    def _prompt_policy(self, current: ManagerConfig) -> Dict[str, Any]:
        policy = current.creation_policy
        frequency = self.prompt(
            "Creation frequency",
            type=click.Choice(FREQUENCIES),
            default=policy.frequency,
        )
        if frequency == "interval":
            default_interval = getattr(policy, "interval_minutes", 1440)
            minutes = self.prompt("Create every N minutes", type=click.IntRange(min=1), default=default_interval)
            return {"frequency": "interval", "interval_minutes": minutes}

        data: Dict[str, Any] = {"frequency": frequency}
        default_time = getattr(policy, "time_of_day", time(0, 0)).strftime("%H:%M")
        data["time_of_day"] = _parse_time(self.prompt("Time of day (HH:MM)", default=default_time))
        if frequency == "every_n_days":
            data["every_n_days"] = self.prompt(
                "Every N days", type=click.IntRange(min=1), default=getattr(policy, "every_n_days", 1)
            )
        if frequency == "weekly":
            default_day = getattr(policy, "day_of_week", DayOfWeek.SUNDAY)
            data["day_of_week"] = self.prompt(
                "Day of week",
                type=click.Choice([day.value for day in DayOfWeek]),
                default=DayOfWeek(default_day).value,
            )
        if frequency in ("monthly", "yearly"):
            data["day_of_month"] = self.prompt(
                "Day of month", type=click.IntRange(1, 31), default=getattr(policy, "day_of_month", 1)
            )
        if frequency == "yearly":
            data["month"] = self.prompt("Month", type=click.IntRange(1, 12), default=getattr(policy, "month", 1))
        return data

    def edit(self, current: Optional[ManagerConfig] = None) -> ManagerConfig:
        """
        Prompt for a new configuration.

        Invalid combinations (minimum above maximum) are re-prompted.

        Args:
            current: Values offered as defaults

        Returns:
            Validated configuration
        """
        current = current or ManagerConfig()
        while True:
            data = current.model_dump()
            data["disk_quota_percent"] = self.prompt(
                "Disk quota percent (8-100)", type=int, default=current.disk_quota_percent
            )
            data["minimum_count"] = self.prompt(
                "Minimum checkpoints to keep", type=click.IntRange(min=1), default=current.minimum_count
            )
            data["maximum_count"] = self.prompt(
                "Maximum checkpoints before pruning", type=click.IntRange(min=1), default=current.maximum_count
            )
            data["schedule_enabled"] = self.confirm(
                "Create checkpoints automatically?", default=current.schedule_enabled
            )
            data["creation_policy"] = self._prompt_policy(current)
            data["min_interframe_minutes"] = self.prompt(
                "Minimum minutes between checkpoints (0 disables)",
                type=click.IntRange(min=0),
                default=current.min_interframe_minutes,
            )
            try:
                return ManagerConfig(**data)
            except ValidationError as e:
                self.console.print(f"[red]Invalid configuration:[/red] {e.errors()[0]['msg']}")
                logger.debug(f"Rejected configuration: {e}")

    def review(self, config: ManagerConfig) -> bool:
        """Show the configuration and ask for confirmation."""
        table = Table(title="Restore point settings")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        for key, value in config.model_dump(mode="json", exclude={"notifications"}).items():
            table.add_row(key, str(value))
        self.console.print(table)
        return self.confirm("Save these settings?", default=True)
