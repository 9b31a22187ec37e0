"""JSON webhook notifications."""

import logging
import socket
from datetime import datetime, timezone
from typing import Dict, Optional

import httpx

from ..config.manager_config import NotificationSettings
from ..errors import NotificationError
from ..models.checkpoint_models import EventType, Outcome
from .base import Notifier, format_subject

logger = logging.getLogger(__name__)


class WebhookNotifier(Notifier):
    """Posts each event as a JSON document to a configured URL."""

    name = "webhook"

    def __init__(
        self,
        settings: NotificationSettings,
        client: Optional[httpx.Client] = None,
        hostname: Optional[str] = None,
    ):
        super().__init__(settings)
        if not settings.webhook_url:
            raise ValueError("WebhookNotifier requires webhook_url")
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=settings.webhook_timeout)
        self.hostname = hostname or socket.gethostname()

    def build_payload(self, event: EventType, outcome: Outcome, details: Dict[str, str]) -> Dict[str, object]:
        return {
            "host": self.hostname,
            "event": event.value,
            "outcome": outcome.value,
            "summary": format_subject(event, outcome, self.hostname),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "details": details,
        }

    def _send(self, event: EventType, outcome: Outcome, details: Dict[str, str]) -> None:
        payload = self.build_payload(event, outcome, details)
        try:
            response = self.client.post(self.settings.webhook_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationError(f"Webhook returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise NotificationError(f"Webhook request failed: {e}") from e

        logger.debug(f"Webhook delivered for {event.value}/{outcome.value}")

    def close(self) -> None:
        if self._owns_client:
            self.client.close()
