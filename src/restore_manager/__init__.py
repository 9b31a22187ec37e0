"""Restore Points Manager: scheduled creation and pruning of System Restore checkpoints."""

__version__ = "1.0.0"

from .config import ManagerConfig, load_config
from .core import decide, normalize_timestamp
from .models import ActionPlan, Checkpoint, CycleSummary
from .services import MaintenanceService

__all__ = [
    "__version__",
    "ManagerConfig",
    "load_config",
    "decide",
    "normalize_timestamp",
    "ActionPlan",
    "Checkpoint",
    "CycleSummary",
    "MaintenanceService",
]
