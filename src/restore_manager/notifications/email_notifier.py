"""Plain-text email notifications over SMTP."""

import logging
import smtplib
import socket
from email.message import EmailMessage
from typing import Callable, Dict, Optional

from ..config.manager_config import NotificationSettings
from ..errors import NotificationError
from ..models.checkpoint_models import EventType, Outcome
from .base import Notifier, format_body, format_subject

logger = logging.getLogger(__name__)


class EmailNotifier(Notifier):
    """
    Sends one short email per event.

    GOTCHA: The SMTP password is read from RESTORE_MANAGER_SMTP_PASSWORD
            when it is not stored in the config file
    """

    name = "email"

    def __init__(
        self,
        settings: NotificationSettings,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
        hostname: Optional[str] = None,
    ):
        super().__init__(settings)
        if not settings.smtp_host:
            raise ValueError("EmailNotifier requires smtp_host")
        if not settings.recipients:
            raise ValueError("EmailNotifier requires at least one recipient")
        self._smtp_factory = smtp_factory
        self.hostname = hostname or socket.gethostname()

    def build_message(self, event: EventType, outcome: Outcome, details: Dict[str, str]) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = format_subject(event, outcome, self.hostname)
        message["From"] = self.settings.sender or f"restore-manager@{self.hostname}"
        message["To"] = ", ".join(self.settings.recipients)
        message.set_content(format_body({"host": self.hostname, **details}))
        return message

    def _send(self, event: EventType, outcome: Outcome, details: Dict[str, str]) -> None:
        message = self.build_message(event, outcome, details)
        try:
            with self._smtp_factory(
                self.settings.smtp_host,
                self.settings.smtp_port,
                timeout=self.settings.smtp_timeout,
            ) as smtp:
                if self.settings.smtp_use_tls:
                    smtp.starttls()
                if self.settings.smtp_username and self.settings.smtp_password:
                    smtp.login(self.settings.smtp_username, self.settings.smtp_password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP delivery to {self.settings.smtp_host} failed: {e}") from e

        logger.debug(f"Email sent for {event.value}/{outcome.value}")
