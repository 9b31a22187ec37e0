"""Run orchestrator: sequences one maintenance cycle against the provider.

PATTERN: Snapshot -> decide -> execute, with per-action fault isolation
CRITICAL: Only an inventory fetch failure aborts a cycle; create and delete
          failures are recorded, notified and logged, then the cycle goes on
GOTCHA: Nothing is persisted between runs; every cycle re-derives its state
        from the provider's inventory
"""

import logging
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from ..config.manager_config import ManagerConfig, clamp_quota_percent
from ..core.clock import Clock, SystemClock
from ..core.decision import decide, format_description, latest_checkpoint
from ..core.schedule import elapsed_minutes
from ..errors import ProviderActionError, ProviderErrorKind, ProviderUnavailable
from ..models.checkpoint_models import (
    ActionOutcome,
    ActionPlan,
    Checkpoint,
    CycleSummary,
    EventType,
    Outcome,
)
from ..notifications.base import LogNotifier, Notifier
from ..providers.base import CheckpointProvider
from ..utils.file_lock import locked

logger = logging.getLogger(__name__)


def _checkpoint_details(checkpoint: Optional[Checkpoint]) -> Dict[str, str]:
    if checkpoint is None:
        return {}
    details = {"id": str(checkpoint.id), "description": checkpoint.description}
    if checkpoint.created_at is not None:
        details["created_at"] = checkpoint.created_at.isoformat()
    return details


class MaintenanceService:
    """
    Executes maintenance cycles and the manual CLI actions.

    All collaborators are passed in at construction; nothing is read from
    process-wide state.
    """

    def __init__(
        self,
        config: ManagerConfig,
        provider: CheckpointProvider,
        notifier: Optional[Notifier] = None,
        clock: Optional[Clock] = None,
        log_path: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Configuration for this invocation
            provider: Checkpoint provider
            notifier: Notification channel (default: log only)
            clock: Time source (default: system clock)
            log_path: Log file to lock during a cycle (None: no locking)
        """
        self.config = config
        self.provider = provider
        self.notifier = notifier or LogNotifier(config.notifications)
        self.clock = clock or SystemClock()
        self.log_path = Path(log_path) if log_path else None

    @contextmanager
    def _cycle_guard(self) -> Iterator[None]:
        guard = (
            locked(self.log_path, timeout=self.config.lock_timeout_seconds)
            if self.log_path is not None
            else nullcontext()
        )
        with guard:
            yield

    def _record(
        self,
        summary: CycleSummary,
        event: EventType,
        target: str,
        details: Dict[str, str],
        error: Optional[ProviderActionError] = None,
    ) -> ActionOutcome:
        if error is None:
            outcome = ActionOutcome(event=event, outcome=Outcome.SUCCESS, target=target, details=details)
        else:
            details = {**details, "error_kind": error.kind.value, "error": str(error)}
            outcome = ActionOutcome(
                event=event,
                outcome=Outcome.FAILURE,
                target=target,
                error_kind=error.kind,
                error=str(error),
                details=details,
            )
        summary.outcomes.append(outcome)
        self.notifier.notify(event, outcome.outcome, details)
        return outcome

    def normalize_frequency_floor(self) -> bool:
        """
        Align the subsystem's creation frequency with min_interframe_minutes.

        A no-op when the provider already reports the configured value.
        Failures are logged and do not abort the cycle.

        Returns:
            True if the setting was written
        """
        target = self.config.min_interframe_minutes
        current = self.provider.get_minimum_creation_interval_minutes()
        if current == target:
            logger.debug(f"Creation frequency already {target} minutes")
            return False
        try:
            self.provider.set_minimum_creation_interval_minutes(target)
        except ProviderActionError as e:
            logger.warning(f"Could not set creation frequency to {target} minutes: {e}")
            return False
        logger.info(f"Creation frequency changed from {current} to {target} minutes")
        return True

    def fetch_inventory(self) -> List[Checkpoint]:
        """
        Snapshot the provider's inventory.

        Raises:
            ProviderUnavailable: If the provider cannot be queried
        """
        try:
            inventory = self.provider.list_checkpoints()
        except ProviderUnavailable as e:
            logger.error(f"Checkpoint inventory unavailable: {e}")
            raise

        for checkpoint in inventory:
            if not checkpoint.is_datable:
                logger.warning(
                    f"Checkpoint #{checkpoint.id} has unrecognized creation time "
                    f"{checkpoint.raw_created_at!r}; excluded from age comparisons"
                )
        return inventory

    def _create(self, description: str, summary: CycleSummary, force: bool) -> ActionOutcome:
        if force:
            try:
                self.provider.set_minimum_creation_interval_minutes(0)
            except ProviderActionError as e:
                logger.warning(f"Could not lift creation frequency for forced creation: {e}")

        try:
            checkpoint = self.provider.create_checkpoint(description)
        except ProviderActionError as e:
            logger.error(f"Create checkpoint '{description}' failed: {e}")
            return self._record(summary, EventType.CREATE, description, {"description": description}, e)
        finally:
            if force:
                try:
                    self.provider.set_minimum_creation_interval_minutes(self.config.min_interframe_minutes)
                except ProviderActionError as e:
                    logger.warning(f"Could not restore creation frequency after forced creation: {e}")

        logger.info(f"Created checkpoint #{checkpoint.id} '{checkpoint.description}'")
        return self._record(summary, EventType.CREATE, str(checkpoint.id), _checkpoint_details(checkpoint))

    def _delete(self, checkpoint_id: int, checkpoint: Optional[Checkpoint], summary: CycleSummary) -> ActionOutcome:
        details = _checkpoint_details(checkpoint) or {"id": str(checkpoint_id)}
        try:
            self.provider.delete_checkpoint(checkpoint_id)
        except ProviderActionError as e:
            logger.error(f"Delete checkpoint #{checkpoint_id} failed: {e}")
            return self._record(summary, EventType.DELETE, str(checkpoint_id), details, e)

        logger.info(f"Deleted checkpoint #{checkpoint_id}")
        return self._record(summary, EventType.DELETE, str(checkpoint_id), details)

    def execute_plan(self, plan: ActionPlan, inventory: List[Checkpoint], summary: CycleSummary, force: bool = False) -> None:
        """
        Apply a plan; creation failure never blocks pruning and each deletion
        is attempted independently.
        """
        if plan.should_create and plan.description:
            self._create(plan.description, summary, force)

        by_id = {checkpoint.id: checkpoint for checkpoint in inventory}
        for checkpoint_id in plan.to_delete:
            self._delete(checkpoint_id, by_id.get(checkpoint_id), summary)

    def _start_summary(self, inventory: List[Checkpoint], plan: ActionPlan) -> CycleSummary:
        return CycleSummary(
            started_at=self.clock.now(),
            plan=plan,
            inventory_count=len(inventory),
            undatable_count=sum(1 for cp in inventory if not cp.is_datable),
        )

    def run_cycle(self, force: bool = False) -> CycleSummary:
        """
        Run one full maintenance cycle (the Monitor action).

        Args:
            force: Bypass the interframe floor for this cycle

        Returns:
            Cycle summary

        Raises:
            ProviderUnavailable: If the inventory cannot be fetched
        """
        with self._cycle_guard():
            self.normalize_frequency_floor()
            inventory = self.fetch_inventory()

            now = self.clock.now()
            plan = decide(inventory, self.config, now, ignore_interframe_floor=force)
            logger.info(f"Create: {plan.should_create} ({plan.create_reason})")
            logger.info(f"Prune: {len(plan.to_delete)} ({plan.prune_reason})")

            summary = self._start_summary(inventory, plan)
            self.execute_plan(plan, inventory, summary, force=force)

            logger.info(summary.format_line())
            return summary

    def cleanup(self) -> CycleSummary:
        """
        Prune-only pass (the Cleanup action).

        Raises:
            ProviderUnavailable: If the inventory cannot be fetched
        """
        with self._cycle_guard():
            inventory = self.fetch_inventory()
            plan = decide(inventory, self.config, self.clock.now())
            plan = plan.model_copy(
                update={"should_create": False, "description": None, "create_reason": "cleanup only"}
            )
            logger.info(f"Prune: {len(plan.to_delete)} ({plan.prune_reason})")

            summary = self._start_summary(inventory, plan)
            self.execute_plan(plan, inventory, summary)

            logger.info(summary.format_line())
            return summary

    def create_now(self, description: Optional[str] = None, force: bool = False) -> CycleSummary:
        """
        Create a checkpoint on demand (the Create action).

        Without force the interframe floor is honoured: a checkpoint that is
        too recent produces a too_soon failure without calling the provider.

        Args:
            description: Checkpoint description (default: generated)
            force: Bypass the floor and the subsystem's own frequency window

        Returns:
            Cycle summary with a single create outcome

        Raises:
            ProviderUnavailable: If the inventory cannot be fetched
        """
        with self._cycle_guard():
            inventory = self.fetch_inventory()
            now = self.clock.now()
            text = description or format_description(self.config, now)
            plan = ActionPlan(should_create=True, description=text, create_reason="manual request")
            summary = self._start_summary(inventory, plan)

            last = latest_checkpoint(inventory)
            floor = self.config.min_interframe_minutes
            if not force and last is not None:
                elapsed = elapsed_minutes(last.created_at, now)
                if elapsed < floor:
                    error = ProviderActionError(
                        ProviderErrorKind.TOO_SOON,
                        "Create checkpoint skipped",
                        f"checkpoint #{last.id} is {elapsed:.0f} min old; floor is {floor} min "
                        f"(use --force to override)",
                    )
                    logger.warning(str(error))
                    self._record(summary, EventType.CREATE, text, {"description": text}, error)
                    logger.info(summary.format_line())
                    return summary

            self._create(text, summary, force)
            logger.info(summary.format_line())
            return summary

    def list_checkpoints(self) -> List[Checkpoint]:
        """
        Inventory sorted oldest first (the List action).

        Raises:
            ProviderUnavailable: If the inventory cannot be fetched
        """
        inventory = self.fetch_inventory()
        return sorted(
            inventory,
            key=lambda cp: (cp.created_at is None, cp.created_at or self.clock.now(), cp.id),
        )

    def apply_configuration(self) -> ActionOutcome:
        """
        Enable System Restore with the configured quota and set the
        subsystem's creation frequency (part of the Configure action).

        Returns:
            Outcome of the apply event
        """
        quota = clamp_quota_percent(self.config.disk_quota_percent)
        summary = CycleSummary(started_at=self.clock.now())
        details = {
            "disk_quota_percent": str(quota),
            "min_interframe_minutes": str(self.config.min_interframe_minutes),
            "minimum_count": str(self.config.minimum_count),
            "maximum_count": str(self.config.maximum_count),
        }
        try:
            self.provider.enable_restore(quota)
            self.provider.set_minimum_creation_interval_minutes(self.config.min_interframe_minutes)
        except ProviderActionError as e:
            logger.error(f"Applying restore settings failed: {e}")
            return self._record(summary, EventType.APPLY, "system restore", details, e)

        logger.info(f"Applied restore settings: quota {quota}%")
        return self._record(summary, EventType.APPLY, "system restore", details)
