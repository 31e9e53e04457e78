"""Core type definitions for the scheduler.

This module defines:
- Constraint: the set of valid values for one schedule field
- Schedule: five constraints and the next-occurrence search
- Error types raised by parsing and scheduling
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, NamedTuple


# ============== Field Domains ==============

class FieldSpec(NamedTuple):
    """Domain of one schedule field."""
    name: str
    limit: int          # Values must be < limit
    one_indexed: bool   # Domain starts at 1 instead of 0


MINUTE = FieldSpec("minute", 60, False)
HOUR = FieldSpec("hour", 24, False)
MONTH_DAY = FieldSpec("day-of-month", 32, True)
MONTH = FieldSpec("month", 13, True)
WEEK_DAY = FieldSpec("day-of-week", 7, False)  # 0 = Sunday

FIELDS = (MINUTE, HOUR, MONTH_DAY, MONTH, WEEK_DAY)

# Assume a satisfiable schedule fires at least once in ten years
MAX_SEARCH_DAYS = 3650


# ============== Errors ==============

class FieldParseError(ValueError):
    """A single schedule field could not be parsed."""

    def __init__(self, text: str, reason: str):
        super().__init__(f"invalid field {text!r}: {reason}")
        self.text = text
        self.reason = reason


class CrontabParseError(ValueError):
    """A crontab line could not be parsed; the whole file is rejected."""

    def __init__(self, lineno: int, line: str, reason: str):
        super().__init__(f"line {lineno}: {reason}: {line!r}")
        self.lineno = lineno
        self.line = line
        self.reason = reason


class ScheduleError(Exception):
    """No qualifying instant exists within the search bound."""

    def __init__(self, message: str, entry: Any = None):
        super().__init__(message)
        self.entry = entry


class WatcherError(RuntimeError):
    """The crontab file watcher stopped working."""


# ============== Constraint ==============

@dataclass(frozen=True)
class Constraint:
    """Valid values of one schedule field, indexed by value."""
    valid: tuple[bool, ...]

    @property
    def limit(self) -> int:
        return len(self.valid)

    @property
    def values(self) -> list[int]:
        return [value for value, ok in enumerate(self.valid) if ok]

    def satisfy(self, value: int) -> bool:
        return self.valid[value]


# ============== Schedule ==============

def week_day(time: datetime) -> int:
    """Day of week with Sunday as 0."""
    return time.isoweekday() % 7


@dataclass(frozen=True)
class Schedule:
    """Five field constraints combined with logical AND.

    Day-of-month and day-of-week are both required to match, unlike
    standard cron which accepts either one when both are restricted.
    """
    minute: Constraint
    hour: Constraint
    month_day: Constraint
    month: Constraint
    week_day: Constraint

    def day_matches(self, time: datetime) -> bool:
        return (
            self.month.satisfy(time.month)
            and self.month_day.satisfy(time.day)
            and self.week_day.satisfy(week_day(time))
        )

    def calc_next(self, time: datetime) -> datetime:
        """Compute the earliest qualifying minute at or after ``time``.

        A ``time`` sitting exactly on a qualifying minute boundary is
        returned as is; any time inside a minute skips that minute.

        Args:
            time: Reference instant

        Returns:
            The next qualifying instant, truncated to the minute

        Raises:
            ScheduleError: If no day within MAX_SEARCH_DAYS qualifies
        """
        if self.day_matches(time):
            found = self._first_in_day(time)
            if found is not None:
                return found

        day = time.replace(hour=0, minute=0, second=0, microsecond=0)
        for _ in range(MAX_SEARCH_DAYS):
            day += timedelta(days=1)
            if not self.day_matches(day):
                continue
            found = self._first_in_day(day)
            if found is not None:
                return found

        raise ScheduleError(
            f"no matching day within {MAX_SEARCH_DAYS} days after {time:%Y-%m-%d %H:%M}"
        )

    def _first_in_day(self, time: datetime) -> datetime | None:
        """Earliest qualifying minute from ``time`` until the end of its day."""
        minute = time.minute
        if time.second or time.microsecond:
            minute += 1

        start = time.replace(second=0, microsecond=0)

        if self.hour.satisfy(time.hour):
            for candidate in range(minute, 60):
                if self.minute.satisfy(candidate):
                    return start.replace(minute=candidate)

        for hour in range(time.hour + 1, 24):
            if not self.hour.satisfy(hour):
                continue
            for candidate in range(60):
                if self.minute.satisfy(candidate):
                    return start.replace(hour=hour, minute=candidate)

        return None
