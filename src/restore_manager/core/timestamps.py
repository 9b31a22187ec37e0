"""Normalization of provider timestamps to a single instant type.

The restore subsystem hands back creation times in several shapes depending
on how it was queried:

- native values (datetime objects, epoch seconds, or the .NET JSON form
  ``/Date(1761744627000)/`` emitted by ``ConvertTo-Json``)
- ISO-8601 strings
- WMI CIM_DATETIME strings: ``yyyyMMddHHmmss.ffffff`` followed by a sign and
  a three digit UTC offset in minutes

Every accepted form is converted to a timezone-aware UTC datetime. Age
comparisons downstream rely on this, so anything unrecognized raises
TimestampNormalizationError instead of guessing.
"""

import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Optional

from ..errors import TimestampNormalizationError

_WMI_PATTERN = re.compile(
    r"^(?P<stamp>\d{14})\.(?P<micro>\d{6})(?P<sign>[+-])(?P<offset>\d{3})$"
)
_DOTNET_JSON_PATTERN = re.compile(r"^/Date\((?P<millis>-?\d+)(?:[+-]\d{4})?\)/$")

# Culture-invariant renderings PowerShell produces when a DateTime is
# converted to string.
_FALLBACK_FORMATS = (
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M:%S %p",
)


def _to_utc(value: datetime, assume_tz: tzinfo) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=assume_tz)
    return value.astimezone(timezone.utc)


def _from_epoch(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _parse_wmi(text: str) -> Optional[datetime]:
    match = _WMI_PATTERN.match(text)
    if not match:
        return None
    base = datetime.strptime(match.group("stamp"), "%Y%m%d%H%M%S")
    base = base.replace(microsecond=int(match.group("micro")))
    minutes = int(match.group("offset"))
    if match.group("sign") == "-":
        minutes = -minutes
    return base.replace(tzinfo=timezone(timedelta(minutes=minutes)))


def _parse_iso(text: str) -> Optional[datetime]:
    candidate = text
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def _parse_fallback(text: str) -> Optional[datetime]:
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def normalize_timestamp(value: Any, assume_tz: tzinfo = timezone.utc) -> datetime:
    """
    Convert a provider timestamp into a timezone-aware UTC datetime.

    Args:
        value: datetime, epoch number, or string in one of the accepted forms
        assume_tz: Zone applied to values that carry no offset

    Returns:
        The same instant expressed in UTC

    Raises:
        TimestampNormalizationError: If the value matches no accepted form
    """
    if isinstance(value, datetime):
        return _to_utc(value, assume_tz)

    if isinstance(value, bool) or value is None:
        raise TimestampNormalizationError(value)

    if isinstance(value, (int, float)):
        try:
            return _from_epoch(float(value))
        except (OverflowError, OSError, ValueError) as e:
            raise TimestampNormalizationError(value) from e

    if not isinstance(value, str):
        raise TimestampNormalizationError(value)

    text = value.strip()
    if not text:
        raise TimestampNormalizationError(value)

    dotnet = _DOTNET_JSON_PATTERN.match(text)
    if dotnet:
        try:
            return _from_epoch(int(dotnet.group("millis")) / 1000.0)
        except (OverflowError, OSError, ValueError) as e:
            raise TimestampNormalizationError(value) from e

    try:
        parsed = _parse_wmi(text)
    except ValueError as e:
        raise TimestampNormalizationError(value) from e
    if parsed is None:
        parsed = _parse_iso(text)
    if parsed is None:
        parsed = _parse_fallback(text)
    if parsed is None:
        raise TimestampNormalizationError(value)

    return _to_utc(parsed, assume_tz)


def try_normalize_timestamp(
    value: Any, assume_tz: tzinfo = timezone.utc
) -> Optional[datetime]:
    """Like normalize_timestamp, but returns None for unrecognized values."""
    try:
        return normalize_timestamp(value, assume_tz=assume_tz)
    except TimestampNormalizationError:
        return None
