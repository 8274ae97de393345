"""Logical clock used by the study engine.

Nothing in the engine reads the physical clock directly. Every service gets a
``Clock`` and asks it for ``now()``; tests and demos use ``ManualClock`` to
move time around without touching the algorithms.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, time, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from vocabplan.config import settings

logger = logging.getLogger(__name__)


def local_timezone() -> tzinfo:
    """Get the timezone of the host."""
    return datetime.now().astimezone().tzinfo


class Clock(ABC):
    """Source of the current logical time."""

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz or local_timezone()

    @abstractmethod
    def now(self) -> datetime:
        """Current timestamp, timezone-aware."""
        raise NotImplementedError("Subclasses must implement this method")

    def day_string(self, moment: Optional[datetime] = None) -> str:
        """Calendar day of ``moment`` (default: now) in the clock's timezone."""
        moment = moment or self.now()
        return moment.astimezone(self.tz).date().isoformat()

    def start_of_day(self, moment: Optional[datetime] = None) -> datetime:
        """Midnight of the calendar day containing ``moment`` (default: now)."""
        moment = moment or self.now()
        local = moment.astimezone(self.tz)
        return datetime.combine(local.date(), time.min, tzinfo=self.tz)


class SystemClock(Clock):
    """Clock backed by the host's wall time."""

    def now(self) -> datetime:
        return datetime.now(self.tz)


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None, tz: Optional[tzinfo] = None):
        super().__init__(tz)
        start = start or datetime.now(self.tz)
        if start.tzinfo is None:
            start = start.replace(tzinfo=self.tz)
        self._now = start

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self.tz)
        logger.debug(f"Clock set from {self._now.isoformat()} to {moment.isoformat()}")
        self._now = moment

    def advance(self, **kwargs) -> datetime:
        """Move forward by a ``timedelta(**kwargs)`` and return the new time."""
        self.set(self._now + timedelta(**kwargs))
        return self._now


class DayBoundaryTracker:
    """Turns clock observations into day-boundary events.

    ``observe()`` returns the new day string the first time a day is seen and
    ``None`` for every later observation within that same day.
    """

    def __init__(self, clock: Clock):
        self.clock = clock
        self._last_day: Optional[str] = None

    @property
    def last_day(self) -> Optional[str]:
        return self._last_day

    def observe(self) -> Optional[str]:
        day = self.clock.day_string()
        if day == self._last_day:
            return None
        logger.debug(f"Day boundary observed: {self._last_day} -> {day}")
        self._last_day = day
        return day

    def reset(self) -> None:
        self._last_day = None


def get_clock() -> Clock:
    """Get a system clock in the configured timezone."""
    tz = ZoneInfo(settings.clock.timezone) if settings.clock.timezone else None
    return SystemClock(tz)
