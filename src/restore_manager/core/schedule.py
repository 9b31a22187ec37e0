"""Calendar and interval arithmetic for checkpoint creation policies."""

import calendar
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Tuple

from ..config.manager_config import CalendarPolicy, CreationPolicy, IntervalPolicy


def _at(day: date, tod: time, tz: Optional[tzinfo]) -> datetime:
    return datetime.combine(day, tod.replace(tzinfo=None), tzinfo=tz)


def _clamped_date(year: int, month: int, day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def _add_month(year: int, month: int) -> Tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def elapsed_minutes(since: datetime, now: datetime) -> float:
    """Minutes from since to now; negative when since lies in the future."""
    return (now - since).total_seconds() / 60.0


def next_fire_time(policy: CalendarPolicy, after: datetime) -> datetime:
    """
    First calendar fire time strictly after the given instant.

    The rule is evaluated in the timezone carried by ``after``, so callers
    pass the last creation time already converted to local time.

    Args:
        policy: Calendar creation policy
        after: Instant of the most recent checkpoint

    Returns:
        Next fire time in the same timezone as ``after``
    """
    tz = after.tzinfo
    tod = policy.time_of_day
    today = after.date()

    if policy.frequency == "hourly":
        candidate = after.replace(minute=tod.minute, second=0, microsecond=0)
        if candidate <= after:
            candidate += timedelta(hours=1)
        return candidate

    if policy.frequency == "daily":
        candidate = _at(today, tod, tz)
        if candidate <= after:
            candidate = _at(today + timedelta(days=1), tod, tz)
        return candidate

    if policy.frequency == "every_n_days":
        # Anchor on the most recent fire at or before the last checkpoint.
        anchor = _at(today, tod, tz)
        if anchor > after:
            anchor = _at(today - timedelta(days=1), tod, tz)
        return _at(anchor.date() + timedelta(days=policy.every_n_days), tod, tz)

    if policy.frequency == "weekly":
        days_ahead = (policy.day_of_week.index - after.weekday()) % 7
        candidate = _at(today + timedelta(days=days_ahead), tod, tz)
        if candidate <= after:
            candidate = _at(candidate.date() + timedelta(days=7), tod, tz)
        return candidate

    if policy.frequency == "monthly":
        year, month = after.year, after.month
        candidate = _at(_clamped_date(year, month, policy.day_of_month), tod, tz)
        if candidate <= after:
            year, month = _add_month(year, month)
            candidate = _at(_clamped_date(year, month, policy.day_of_month), tod, tz)
        return candidate

    if policy.frequency == "yearly":
        candidate = _at(_clamped_date(after.year, policy.month, policy.day_of_month), tod, tz)
        if candidate <= after:
            candidate = _at(
                _clamped_date(after.year + 1, policy.month, policy.day_of_month), tod, tz
            )
        return candidate

    raise ValueError(f"Unknown calendar frequency: {policy.frequency}")


def is_creation_due(policy: CreationPolicy, last_created_at: datetime, now: datetime) -> bool:
    """
    Whether the creation policy calls for a new checkpoint.

    The interframe floor is not applied here.

    Args:
        policy: Interval or calendar policy
        last_created_at: Creation time of the newest checkpoint
        now: Current instant

    Returns:
        True if a checkpoint is due
    """
    if isinstance(policy, IntervalPolicy):
        return elapsed_minutes(last_created_at, now) >= policy.interval_minutes

    local_last = last_created_at.astimezone(now.tzinfo) if now.tzinfo else last_created_at
    return now >= next_fire_time(policy, local_last)
