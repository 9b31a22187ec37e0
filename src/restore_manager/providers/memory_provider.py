"""In-memory checkpoint provider for simulation and tests."""

from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Set

from ..core.clock import Clock, SystemClock
from ..errors import ProviderActionError, ProviderErrorKind, ProviderUnavailable
from ..models.checkpoint_models import Checkpoint
from .base import CheckpointProvider


class InMemoryProvider(CheckpointProvider):
    """
    Deterministic provider that mimics the restore subsystem's behaviour.

    Like the real subsystem it refuses a creation inside its own frequency
    window (default 24 hours, 0 disables). Failures can be injected per
    operation to exercise error paths.
    """

    name = "memory"

    def __init__(
        self,
        clock: Optional[Clock] = None,
        checkpoints: Optional[Iterable[Checkpoint]] = None,
        creation_interval_minutes: int = 1440,
    ):
        super().__init__()
        self.clock = clock or SystemClock()
        self._store: Dict[int, Checkpoint] = {}
        for checkpoint in checkpoints or []:
            self._store[checkpoint.id] = checkpoint
        self._next_id = max(self._store, default=0) + 1
        self.creation_interval_minutes: int = creation_interval_minutes
        self.enabled = False
        self.quota_percent: Optional[int] = None

        # Fault injection
        self.unavailable = False
        self.create_error: Optional[ProviderErrorKind] = None
        self.delete_errors: Dict[int, ProviderErrorKind] = {}
        self.apply_error: Optional[ProviderErrorKind] = None

        self.calls: List[str] = []

    def _raise_if_injected(self, kind: Optional[ProviderErrorKind], operation: str) -> None:
        if kind is not None:
            raise ProviderActionError(kind, f"{operation} failed", "injected failure")

    def enable_restore(self, quota_percent: int) -> None:
        self.calls.append(f"enable_restore:{quota_percent}")
        self._raise_if_injected(self.apply_error, "Enable restore")
        self.enabled = True
        self.quota_percent = quota_percent

    def list_checkpoints(self) -> List[Checkpoint]:
        self.calls.append("list_checkpoints")
        if self.unavailable:
            raise ProviderUnavailable("In-memory provider marked unavailable")
        return [cp.model_copy() for cp in sorted(self._store.values(), key=lambda cp: cp.id)]

    def create_checkpoint(self, description: str) -> Checkpoint:
        self.calls.append(f"create_checkpoint:{description}")
        self._raise_if_injected(self.create_error, "Create checkpoint")

        now = self.clock.now()
        if self.creation_interval_minutes > 0:
            window = timedelta(minutes=self.creation_interval_minutes)
            for existing in self._store.values():
                if existing.created_at is not None and now - existing.created_at < window:
                    raise ProviderActionError(
                        ProviderErrorKind.TOO_SOON,
                        "Create checkpoint declined",
                        f"checkpoint #{existing.id} is inside the "
                        f"{self.creation_interval_minutes} minute window",
                    )

        checkpoint = Checkpoint(
            id=self._next_id,
            description=description,
            created_at=now,
            restore_point_type="APPLICATION_INSTALL",
        )
        self._store[checkpoint.id] = checkpoint
        self._next_id += 1
        return checkpoint.model_copy()

    def delete_checkpoint(self, checkpoint_id: int) -> None:
        self.calls.append(f"delete_checkpoint:{checkpoint_id}")
        self._raise_if_injected(self.delete_errors.get(checkpoint_id), f"Delete checkpoint #{checkpoint_id}")
        if checkpoint_id not in self._store:
            raise ProviderActionError(
                ProviderErrorKind.NOT_FOUND,
                f"Delete checkpoint #{checkpoint_id} failed",
                "no such checkpoint",
            )
        del self._store[checkpoint_id]

    def set_minimum_creation_interval_minutes(self, minutes: int) -> None:
        self.calls.append(f"set_interval:{minutes}")
        self._raise_if_injected(self.apply_error, "Set creation frequency")
        self.creation_interval_minutes = minutes

    def get_minimum_creation_interval_minutes(self) -> Optional[int]:
        return self.creation_interval_minutes

    @property
    def checkpoint_ids(self) -> Set[int]:
        return set(self._store)
