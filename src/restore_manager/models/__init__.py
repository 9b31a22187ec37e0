"""Data models for the restore points manager."""

from .checkpoint_models import (
    Checkpoint,
    ActionPlan,
    EventType,
    Outcome,
    ActionOutcome,
    CycleSummary,
)

__all__ = [
    "Checkpoint",
    "ActionPlan",
    "EventType",
    "Outcome",
    "ActionOutcome",
    "CycleSummary",
]
