from datetime import datetime, tzinfo
from typing import Protocol


class Clock(Protocol):
    tz: tzinfo | None

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in tz, or in the server's local time when tz is None."""

    def __init__(self, tz: tzinfo | None = None):
        self.tz = tz

    def now(self) -> datetime:
        if self.tz is None:
            return datetime.now().astimezone()
        return datetime.now(self.tz)


class FixedClock:
    """Clock frozen at one instant, for tests and replays."""

    def __init__(self, instant: datetime, tz: tzinfo | None = None):
        self.instant = instant
        self.tz = tz

    def now(self) -> datetime:
        return self.instant
