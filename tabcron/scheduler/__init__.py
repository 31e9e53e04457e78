"""Scheduling core: field constraints, schedules, entries and the crontab parser."""
from .models import Entry
from .task_parser import parse_crontab, parse_field, parse_line
from .types import (
    Constraint,
    CrontabParseError,
    FieldParseError,
    Schedule,
    ScheduleError,
    WatcherError,
)

__all__ = [
    "Entry",
    "Constraint",
    "Schedule",
    "CrontabParseError",
    "FieldParseError",
    "ScheduleError",
    "WatcherError",
    "parse_crontab",
    "parse_field",
    "parse_line",
]
