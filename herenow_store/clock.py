"""
Clock Module
============

Supplies "now" and "today" to every other component.

Time-zone policy: system-local. ``SystemClock.now()`` is the local wall
clock as an aware datetime; the day stamp is the local calendar date.
``ManualClock`` keeps whatever tz its start datetime carries.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol, Union


def day_stamp(moment: datetime) -> str:
    """Calendar-day identifier (YYYY-MM-DD) of an aware datetime."""
    return moment.date().isoformat()


def ensure_aware(moment: datetime) -> datetime:
    """Interpret naive datetimes as system-local time."""
    if moment.tzinfo is None:
        return moment.astimezone()
    return moment


def add_local_days(moment: datetime, days: int) -> datetime:
    """
    Move an aware datetime by whole calendar days on its wall clock.

    A zone-aware tzinfo (zoneinfo) already does wall-clock arithmetic. A
    fixed offset equal to the system-local offset (what astimezone()
    returns) is stepped on the local wall clock and re-localized, so the
    hour survives a DST change. Other fixed offsets (UTC) have no DST.

    Example (TZ=America/New_York):
        add_local_days(datetime(2025, 3, 8, 9, 0).astimezone(), 1)
        # 2025-03-09 09:00 -04:00, not 10:00
    """
    moment = ensure_aware(moment)
    step = timedelta(days=days)
    if isinstance(moment.tzinfo, timezone) and moment.astimezone().utcoffset() == moment.utcoffset():
        return (moment.replace(tzinfo=None) + step).astimezone()
    return moment + step


class Clock(Protocol):
    """Protocol for time sources (interface)."""

    def now(self) -> datetime:
        """Current moment (timezone-aware)."""
        ...

    def today(self) -> str:
        """Current calendar day as YYYY-MM-DD."""
        ...


class SystemClock:
    """Wall-clock time in the system time zone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()

    def today(self) -> str:
        return day_stamp(self.now())

    def __repr__(self) -> str:
        return "SystemClock()"


class ManualClock:
    """
    Clock that only moves when told to.

    Used to drive ManualTimerQueue and to simulate day boundaries.

    Usage:
        clock = ManualClock(datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc))
        clock.advance(hours=24)
        clock.today()  # "2024-06-02"
    """

    def __init__(self, start: datetime):
        self._now = ensure_aware(start)

    def now(self) -> datetime:
        return self._now

    def today(self) -> str:
        return day_stamp(self._now)

    def set(self, moment: datetime) -> None:
        """
        Jump to an absolute moment.

        Raises:
            ValueError: If moment is earlier than the current time
        """
        moment = ensure_aware(moment)
        if moment < self._now:
            raise ValueError(
                f"ManualClock cannot move backwards ({moment.isoformat()} < {self._now.isoformat()})"
            )
        self._now = moment

    def advance(self, delta: Union[timedelta, float, None] = None, **kwargs) -> datetime:
        """
        Move forward by a timedelta, a number of seconds, or timedelta kwargs.

        Returns:
            The new current moment
        """
        if delta is None:
            delta = timedelta(**kwargs)
        elif not isinstance(delta, timedelta):
            delta = timedelta(seconds=float(delta))
        self.set(self._now + delta)
        return self._now

    def __repr__(self) -> str:
        return f"ManualClock(now={self._now.isoformat()})"
