"""Data models for crontab entries."""
from dataclasses import dataclass, field
from datetime import datetime

from .types import Schedule, ScheduleError


@dataclass(eq=False)
class Entry:
    """One crontab line: a command and when to run it.

    Entries compare by identity, so two lines with the same text are
    still two jobs.
    """
    command: str
    schedule: Schedule
    lineno: int = 0
    expression: str = ""

    # Memoized result of schedule.calc_next
    _next_run: datetime | None = field(default=None, init=False, repr=False)

    @property
    def cached_next_run(self) -> datetime | None:
        return self._next_run

    def next_run(self, now: datetime) -> datetime:
        """Next run at or after ``now``.

        The cached instant is reused until ``now`` passes it, so repeated
        calls with a non-decreasing ``now`` are cheap.

        Raises:
            ScheduleError: If the schedule can never fire; ``entry`` is set
        """
        if self._next_run is None or self._next_run < now:
            try:
                self._next_run = self.schedule.calc_next(now)
            except ScheduleError as e:
                e.entry = self
                raise
        return self._next_run

    def describe(self) -> str:
        """Short label for log messages."""
        if self.lineno:
            return f"line {self.lineno} ({self.command!r})"
        return repr(self.command)
