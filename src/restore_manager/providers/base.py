"""Checkpoint provider abstraction."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.checkpoint_models import Checkpoint

logger = logging.getLogger(__name__)


class CheckpointProvider(ABC):
    """
    Abstract base class for restore point back ends.

    The provider is authoritative for the checkpoint store; callers only ever
    hold snapshots returned by list_checkpoints().

    Failure contract:
    - list_checkpoints raises ProviderUnavailable
    - every other operation raises ProviderActionError with a kind
    """

    name = "base"

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    @abstractmethod
    def enable_restore(self, quota_percent: int) -> None:
        """
        Enable System Restore on the system drive and size its storage.

        Args:
            quota_percent: Disk share in [8, 100], already clamped by the caller

        Raises:
            ProviderActionError: On failure
        """
        pass

    @abstractmethod
    def list_checkpoints(self) -> List[Checkpoint]:
        """
        Snapshot of every existing checkpoint.

        Timestamps are normalized here; undatable entries are returned with
        created_at=None.

        Raises:
            ProviderUnavailable: If the store cannot be queried
        """
        pass

    @abstractmethod
    def create_checkpoint(self, description: str) -> Checkpoint:
        """
        Create a checkpoint.

        Raises:
            ProviderActionError: too_soon when the subsystem declines because
                a prior checkpoint is too recent
        """
        pass

    @abstractmethod
    def delete_checkpoint(self, checkpoint_id: int) -> None:
        """
        Delete a checkpoint by sequence number.

        Raises:
            ProviderActionError: not_found, permission_denied or unknown
        """
        pass

    @abstractmethod
    def set_minimum_creation_interval_minutes(self, minutes: int) -> None:
        """
        Set the subsystem's own minimum spacing between creations.

        Raises:
            ProviderActionError: On failure
        """
        pass

    def get_minimum_creation_interval_minutes(self) -> Optional[int]:
        """
        Current subsystem spacing, or None when it cannot be read.

        Returning None makes callers re-apply the setting, which is safe.
        """
        return None
