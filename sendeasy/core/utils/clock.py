"""Time helpers. All persisted timestamps are naive UTC."""

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Return the named zone, or None for the server's local zone."""
    return ZoneInfo(name) if name else None


def end_of_next_day(now: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """
    Return 23:59:59.999 of the calendar day after ``now`` in ``tz``.

    ``now`` is naive UTC; the result is converted back to naive UTC. With
    ``tz=None`` the server's local zone is used, and the local offset is
    looked up for the target day rather than for ``now``.
    """
    aware_now = now.replace(tzinfo=timezone.utc)
    if tz is None:
        # Naive local wall time; astimezone() resolves its offset per date
        local_now = aware_now.astimezone().replace(tzinfo=None)
    else:
        local_now = aware_now.astimezone(tz)
    next_day = (local_now + timedelta(days=1)).date()
    local_end = datetime(
        next_day.year, next_day.month, next_day.day, 23, 59, 59, 999000,
        tzinfo=tz,
    )
    return local_end.astimezone(timezone.utc).replace(tzinfo=None)
