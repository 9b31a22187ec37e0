"""Exception taxonomy for the restore points manager.

Fatal errors (ConfigLoadError, ProviderUnavailable) abort a cycle and set a
non-zero exit code. Everything else is isolated per action and reported via
notifications and the log.
"""

from enum import Enum
from typing import Optional


class RestoreManagerError(Exception):
    """Base class for all restore manager errors."""

    pass


class ConfigLoadError(RestoreManagerError):
    """Raised when the configuration document cannot be read or validated."""

    pass


class ProviderUnavailable(RestoreManagerError):
    """Raised when the checkpoint provider cannot be queried at all."""

    pass


class ProviderErrorKind(str, Enum):
    """Classification of a failed provider action."""

    TOO_SOON = "too_soon"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


class ProviderActionError(RestoreManagerError):
    """Raised when a single provider action (create, delete, apply) fails."""

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} ({self.kind.value}): {self.detail}"
        return f"{self.message} ({self.kind.value})"


class NotificationError(RestoreManagerError):
    """Raised by a notification channel; always caught and logged."""

    pass


class TimestampNormalizationError(RestoreManagerError):
    """Raised when a provider timestamp matches none of the accepted encodings."""

    def __init__(self, value: object):
        super().__init__(f"Unrecognized timestamp value: {value!r}")
        self.value = value


class LockTimeout(RestoreManagerError):
    """Raised when the advisory log lock cannot be acquired in time."""

    pass
