"""Decision engine: computes the create/prune plan for one invocation.

PATTERN: Pure function over a read-only inventory snapshot
CRITICAL: No I/O and no logging; callers report data-quality issues
GOTCHA: Undatable checkpoints count toward totals but never take part in
        age comparisons, so they are never selected for deletion
"""

from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from ..config.manager_config import ManagerConfig
from ..models.checkpoint_models import ActionPlan, Checkpoint
from .schedule import elapsed_minutes, is_creation_due


def latest_checkpoint(inventory: Sequence[Checkpoint]) -> Optional[Checkpoint]:
    """
    Newest datable checkpoint.

    Entries sharing the same created_at are ordered by id, so the highest id
    wins.

    Args:
        inventory: Checkpoint snapshot

    Returns:
        The newest checkpoint, or None if no entry carries a timestamp
    """
    datable = [cp for cp in inventory if cp.created_at is not None]
    if not datable:
        return None
    return max(datable, key=lambda cp: (cp.created_at, cp.id))


def format_description(config: ManagerConfig, now: datetime) -> str:
    return f"{config.description_prefix} {now.strftime('%Y-%m-%d %H:%M')}"


def decide_creation(
    inventory: Sequence[Checkpoint],
    config: ManagerConfig,
    now: datetime,
    ignore_interframe_floor: bool = False,
) -> Tuple[bool, str]:
    """
    Creation sub-decision.

    Returns:
        Tuple of (should_create, reason)
    """
    if not inventory:
        return True, "bootstrap: no checkpoints exist"

    if not config.schedule_enabled:
        return False, "automatic creation disabled"

    last = latest_checkpoint(inventory)
    if last is None:
        return True, "bootstrap: no checkpoint carries a usable timestamp"

    elapsed = elapsed_minutes(last.created_at, now)

    if not ignore_interframe_floor and elapsed < config.min_interframe_minutes:
        return False, (
            f"interframe floor: last checkpoint #{last.id} is {elapsed:.0f} min old, "
            f"floor is {config.min_interframe_minutes} min"
        )

    if is_creation_due(config.creation_policy, last.created_at, now):
        return True, (
            f"{config.creation_policy.frequency} policy due "
            f"(last checkpoint #{last.id} is {elapsed:.0f} min old)"
        )

    return False, f"{config.creation_policy.frequency} policy not yet due"


def select_prunable(
    inventory: Sequence[Checkpoint],
    config: ManagerConfig,
) -> Tuple[List[int], str]:
    """
    Pruning sub-decision.

    Returns:
        Tuple of (ids oldest first, reason)
    """
    count = len(inventory)
    if count <= config.maximum_count:
        return [], f"{count} checkpoints within maximum of {config.maximum_count}"

    delete_count = max(0, count - config.minimum_count)
    ordered = sorted(
        (cp for cp in inventory if cp.created_at is not None),
        key=lambda cp: (cp.created_at, cp.id),
    )
    selected: List[int] = [cp.id for cp in ordered[:delete_count]]

    reason = (
        f"{count} checkpoints exceed maximum of {config.maximum_count}; "
        f"pruning {len(selected)} to reach minimum of {config.minimum_count}"
    )
    if len(selected) < delete_count:
        reason += f" ({delete_count - len(selected)} undatable checkpoints kept)"
    return selected, reason


def decide(
    inventory: Sequence[Checkpoint],
    config: ManagerConfig,
    now: datetime,
    *,
    ignore_interframe_floor: bool = False,
) -> ActionPlan:
    """
    Compute the action plan for one maintenance cycle.

    Creation and pruning are independent sub-decisions evaluated on the same
    snapshot. The function is deterministic: identical inputs yield an
    identical plan.

    Args:
        inventory: Checkpoint snapshot taken once for this cycle
        config: Active configuration
        now: Current instant (timezone-aware)
        ignore_interframe_floor: Skip the minimum spacing check (--force)

    Returns:
        ActionPlan with at most one creation and zero or more deletions
    """
    should_create, create_reason = decide_creation(
        inventory, config, now, ignore_interframe_floor=ignore_interframe_floor
    )
    to_delete, prune_reason = select_prunable(inventory, config)

    return ActionPlan(
        should_create=should_create,
        description=format_description(config, now) if should_create else None,
        to_delete=to_delete,
        create_reason=create_reason,
        prune_reason=prune_reason,
    )
