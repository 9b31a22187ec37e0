"""Notifier abstraction.

Notifications are best-effort: a transport failure is logged and never
propagated to the maintenance cycle.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..config.manager_config import NotificationSettings
from ..errors import NotificationError
from ..models.checkpoint_models import EventType, Outcome

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """
    Base class for notification channels.

    Subclasses implement _send(); notify() wraps it so that no exception
    escapes.
    """

    name = "base"

    def __init__(self, settings: Optional[NotificationSettings] = None):
        self.settings = settings or NotificationSettings()

    def wants(self, event: EventType, outcome: Outcome) -> bool:
        """Whether the settings ask for this event/outcome combination."""
        if outcome == Outcome.SUCCESS and self.settings.failures_only:
            return False
        toggles = {
            EventType.CREATE: self.settings.notify_on_create,
            EventType.DELETE: self.settings.notify_on_delete,
            EventType.APPLY: self.settings.notify_on_apply,
        }
        return toggles.get(event, True)

    def notify(
        self,
        event: EventType,
        outcome: Outcome,
        details: Optional[Dict[str, str]] = None,
    ) -> bool:
        """
        Send a notification.

        Args:
            event: Lifecycle event
            outcome: Success or failure
            details: Flat string map (id, description, error, ...)

        Returns:
            True if delivered (or filtered out), False on transport failure
        """
        if not self.wants(event, outcome):
            return True
        try:
            self._send(event, outcome, dict(details or {}))
            return True
        except Exception as e:
            error = e if isinstance(e, NotificationError) else NotificationError(str(e))
            logger.warning(
                f"Notification via {self.name} failed for {event.value}/{outcome.value}: {error}"
            )
            return False

    @abstractmethod
    def _send(self, event: EventType, outcome: Outcome, details: Dict[str, str]) -> None:
        """Deliver one notification; may raise."""
        pass

    def close(self) -> None:
        """Release transport resources held by the channel."""
        pass


def format_subject(event: EventType, outcome: Outcome, hostname: str) -> str:
    verb = {
        EventType.CREATE: "Restore point created",
        EventType.DELETE: "Restore point deleted",
        EventType.APPLY: "Restore settings applied",
    }[event]
    if outcome == Outcome.FAILURE:
        verb = {
            EventType.CREATE: "Restore point creation failed",
            EventType.DELETE: "Restore point deletion failed",
            EventType.APPLY: "Applying restore settings failed",
        }[event]
    return f"[{hostname}] {verb}"


def format_body(details: Dict[str, str]) -> str:
    return "\n".join(f"{key}: {value}" for key, value in sorted(details.items()))


class LogNotifier(Notifier):
    """Writes every event to the log; always enabled."""

    name = "log"

    def wants(self, event: EventType, outcome: Outcome) -> bool:
        return True

    def _send(self, event: EventType, outcome: Outcome, details: Dict[str, str]) -> None:
        summary = ", ".join(f"{key}={value}" for key, value in sorted(details.items()))
        if outcome == Outcome.FAILURE:
            logger.error(f"{event.value} {outcome.value}: {summary}")
        else:
            logger.info(f"{event.value} {outcome.value}: {summary}")


class CompositeNotifier(Notifier):
    """Fans out to several channels; a failing channel does not stop the rest."""

    name = "composite"

    def __init__(self, notifiers: List[Notifier], settings: Optional[NotificationSettings] = None):
        super().__init__(settings)
        self.notifiers = notifiers

    def wants(self, event: EventType, outcome: Outcome) -> bool:
        return True

    def notify(
        self,
        event: EventType,
        outcome: Outcome,
        details: Optional[Dict[str, str]] = None,
    ) -> bool:
        results = [notifier.notify(event, outcome, details) for notifier in self.notifiers]
        return all(results)

    def _send(self, event: EventType, outcome: Outcome, details: Dict[str, str]) -> None:
        """Unused; notify() fans out to the channels directly."""
        pass

    def close(self) -> None:
        for notifier in self.notifiers:
            notifier.close()
