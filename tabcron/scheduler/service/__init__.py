"""Scheduler service package.

This package contains the runtime components around the scheduling core:
- store.py: Crontab file location and loading
- watcher.py: File change notification (watchdog)
- service.py: Dispatch loop
"""
from .service import SchedulerService
from .store import CrontabStore
from .watcher import CrontabWatcher, ReloadSignal

__all__ = ["SchedulerService", "CrontabStore", "CrontabWatcher", "ReloadSignal"]
