"""Checkpoint and action plan models."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from ..errors import ProviderErrorKind


class Checkpoint(BaseModel):
    """
    Read-only snapshot of one restore point.

    created_at is always timezone-aware UTC; it is None when the provider
    value could not be normalized, in which case raw_created_at keeps the
    original text.
    """

    id: int = Field(description="Provider-assigned sequence number")
    description: str = Field(default="", description="Text set at creation")
    created_at: Optional[datetime] = Field(
        default=None,
        description="Normalized creation instant (UTC)",
    )
    raw_created_at: Optional[str] = Field(
        default=None,
        description="Provider timestamp as received",
    )
    restore_point_type: Optional[str] = Field(default=None)

    @model_validator(mode="before")
    @classmethod
    def _normalize_created_at(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("created_at") is None:
            return data
        # Imported here: core imports this module
        from ..core.timestamps import try_normalize_timestamp

        raw = data["created_at"]
        data = dict(data)
        data["created_at"] = try_normalize_timestamp(raw)
        if data["created_at"] is None and data.get("raw_created_at") is None:
            data["raw_created_at"] = str(raw)
        return data

    @property
    def is_datable(self) -> bool:
        """Whether the checkpoint can take part in age comparisons."""
        return self.created_at is not None


class ActionPlan(BaseModel):
    """Output of one decision engine evaluation."""

    should_create: bool = False
    description: Optional[str] = None
    to_delete: List[int] = Field(
        default_factory=list,
        description="Checkpoint ids to delete, oldest first",
    )
    create_reason: str = ""
    prune_reason: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.should_create and not self.to_delete


class EventType(str, Enum):
    """Lifecycle events reported to the notifier."""

    CREATE = "create"
    DELETE = "delete"
    APPLY = "apply"


class Outcome(str, Enum):
    """Result of a single action."""

    SUCCESS = "success"
    FAILURE = "failure"


class ActionOutcome(BaseModel):
    """Result of one provider action inside a cycle."""

    event: EventType
    outcome: Outcome
    target: str = Field(description="Checkpoint id or description acted upon")
    error_kind: Optional[ProviderErrorKind] = None
    error: Optional[str] = None
    details: Dict[str, str] = Field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.outcome == Outcome.SUCCESS


class CycleSummary(BaseModel):
    """Aggregated result of one maintenance cycle."""

    started_at: datetime
    plan: ActionPlan = Field(default_factory=ActionPlan)
    inventory_count: int = 0
    undatable_count: int = 0
    outcomes: List[ActionOutcome] = Field(default_factory=list)

    def _count(self, event: EventType, outcome: Optional[Outcome] = None) -> int:
        return sum(
            1
            for item in self.outcomes
            if item.event == event and (outcome is None or item.outcome == outcome)
        )

    @property
    def create_attempted(self) -> int:
        return self._count(EventType.CREATE)

    @property
    def create_succeeded(self) -> int:
        return self._count(EventType.CREATE, Outcome.SUCCESS)

    @property
    def create_failed(self) -> int:
        return self._count(EventType.CREATE, Outcome.FAILURE)

    @property
    def delete_attempted(self) -> int:
        return self._count(EventType.DELETE)

    @property
    def delete_succeeded(self) -> int:
        return self._count(EventType.DELETE, Outcome.SUCCESS)

    @property
    def delete_failed(self) -> int:
        return self._count(EventType.DELETE, Outcome.FAILURE)

    @property
    def failures(self) -> List[ActionOutcome]:
        return [item for item in self.outcomes if not item.succeeded]

    def format_line(self) -> str:
        """One-line summary written at the end of every cycle."""
        return (
            f"Cycle complete: inventory={self.inventory_count} "
            f"create attempted={self.create_attempted} "
            f"succeeded={self.create_succeeded} failed={self.create_failed}; "
            f"delete attempted={self.delete_attempted} "
            f"succeeded={self.delete_succeeded} failed={self.delete_failed}"
        )
