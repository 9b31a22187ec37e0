"""Notification channels."""

import logging
from typing import List

from ..config.manager_config import NotificationSettings
from .base import Notifier, LogNotifier, CompositeNotifier
from .email_notifier import EmailNotifier
from .webhook_notifier import WebhookNotifier

logger = logging.getLogger(__name__)


def build_notifier(settings: NotificationSettings) -> CompositeNotifier:
    """
    Assemble the notifier for a run from configuration.

    The log channel is always present. Email and webhook channels are added
    when notifications are enabled and their settings are complete.

    Args:
        settings: Notification settings

    Returns:
        Composite notifier
    """
    channels: List[Notifier] = [LogNotifier(settings)]

    if settings.enabled:
        if settings.smtp_host and settings.recipients:
            channels.append(EmailNotifier(settings))
        elif settings.smtp_host or settings.recipients:
            logger.warning("Email notifications need both smtp_host and recipients; email disabled")
        if settings.webhook_url:
            channels.append(WebhookNotifier(settings))

    return CompositeNotifier(channels, settings)


__all__ = [
    "Notifier",
    "LogNotifier",
    "CompositeNotifier",
    "EmailNotifier",
    "WebhookNotifier",
    "build_notifier",
]
