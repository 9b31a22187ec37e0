"""Time sources.

GOTCHA: datetime.now().astimezone() carries the offset in effect at that
        instant only. Wall-clock arithmetic across a DST change needs a
        real zone, so the system clock uses either a named IANA zone or
        LocalTimezone, which asks the C library for each instant's offset.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

_EPOCH = datetime(1970, 1, 1)
_DAY_SECONDS = 86400


def _gmtoff(stamp: float) -> int:
    return time.localtime(stamp).tm_gmtoff


class LocalTimezone(tzinfo):
    """The host's zone, resolving the UTC offset per instant."""

    def _wall_seconds(self, dt: datetime) -> float:
        return (dt.replace(tzinfo=None, fold=0) - _EPOCH).total_seconds()

    def utcoffset(self, dt: Optional[datetime]) -> timedelta:
        if dt is None:
            return timedelta(seconds=-time.timezone)
        wall = self._wall_seconds(dt)
        before = _gmtoff(wall - _DAY_SECONDS)
        after = _gmtoff(wall + _DAY_SECONDS)
        if before == after:
            return timedelta(seconds=before)
        valid = [offset for offset in (before, after) if _gmtoff(wall - offset) == offset]
        if len(valid) == 1:
            return timedelta(seconds=valid[0])
        # Repeated or skipped wall time: fold picks the side of the transition
        return timedelta(seconds=after if dt.fold else before)

    def dst(self, dt: Optional[datetime]) -> timedelta:
        return self.utcoffset(dt) - timedelta(seconds=-time.timezone)

    def tzname(self, dt: Optional[datetime]) -> str:
        if dt is None:
            return time.tzname[0]
        stamp = self._wall_seconds(dt) - self.utcoffset(dt).total_seconds()
        return time.localtime(stamp).tm_zone

    def fromutc(self, dt: datetime) -> datetime:
        offset = timedelta(seconds=_gmtoff((dt.replace(tzinfo=None) - _EPOCH).total_seconds()))
        local = dt + offset
        if self.utcoffset(local) != offset:
            local = local.replace(fold=1)
        return local

    def __repr__(self) -> str:
        return "LocalTimezone()"


def resolve_zone(name: Optional[str] = None) -> tzinfo:
    """
    Zone used for calendar evaluation.

    Args:
        name: IANA zone name, or None for the host zone

    Raises:
        ZoneInfoNotFoundError: If the name is unknown
    """
    if name:
        return ZoneInfo(name)
    return LocalTimezone()


class Clock(ABC):
    """Supplies the current instant as a timezone-aware datetime."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(Clock):
    """Wall clock in a DST-aware zone (default: the host's)."""

    def __init__(self, zone: Optional[tzinfo] = None):
        self.zone = zone or LocalTimezone()

    def now(self) -> datetime:
        return datetime.now(self.zone)


class FixedClock(Clock):
    """Clock frozen at a given instant, advanced manually."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = instant

    def advance(self, **kwargs) -> datetime:
        """Move the clock forward by a timedelta built from kwargs."""
        self._instant = self._instant + timedelta(**kwargs)
        return self._instant
