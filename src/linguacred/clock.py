"""Injectable clock defining the canonical calendar for daily activity and streaks."""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Source of the current instant and of calendar dates in the canonical timezone."""

    tz: tzinfo

    def now(self) -> datetime: ...

    def today(self) -> date: ...

    def local_date(self, moment: datetime) -> date: ...


class SystemClock:
    """Wall clock pinned to one canonical timezone."""

    def __init__(self, tz_name: str = "UTC") -> None:
        self.tz: tzinfo = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().astimezone(self.tz).date()

    def local_date(self, moment: datetime) -> date:
        """Calendar date of ``moment`` in the canonical timezone. Naive values are taken as canonical."""
        if moment.tzinfo is None:
            return moment.date()
        return moment.astimezone(self.tz).date()


class FixedClock(SystemClock):
    """Clock frozen at a given instant, for tests and replays."""

    def __init__(self, moment: datetime, tz_name: str = "UTC") -> None:
        super().__init__(tz_name)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self.tz)
        self._moment = moment

    def now(self) -> datetime:
        return self._moment

    def advance(self, days: int = 0, **kwargs: float) -> None:
        self._moment += timedelta(days=days, **kwargs)


def get_clock() -> Clock:
    """Clock dependency built from settings."""
    from linguacred.config import get_settings

    return SystemClock(get_settings().streak_timezone)
