"""Crontab change notification.

The watcher runs on watchdog's observer thread and only ever posts to a
ReloadSignal; the dispatch loop drains it once per iteration.
"""
from pathlib import Path
from queue import Empty, Full, Queue

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..types import WatcherError

logger = logger.bind(module="scheduler.watcher")


class ReloadSignal:
    """Single-slot channel telling the loop the crontab changed.

    Any number of notifications before the next consume() collapse into one.
    """

    def __init__(self):
        self._slot: Queue[bool] = Queue(maxsize=1)

    def notify(self) -> None:
        """Post a change notification without blocking."""
        try:
            self._slot.put_nowait(True)
        except Full:
            pass

    def consume(self) -> bool:
        """Read and clear the pending notification."""
        try:
            return self._slot.get_nowait()
        except Empty:
            return False


class CrontabEventHandler(FileSystemEventHandler):
    """Forwards events touching the crontab path to a ReloadSignal."""

    def __init__(self, path: Path, signal: ReloadSignal):
        self.path = path
        self.signal = signal

    def _touches_crontab(self, event: FileSystemEvent) -> bool:
        if event.is_directory:
            return False
        paths = [event.src_path, getattr(event, "dest_path", "")]
        return any(p and Path(p).resolve() == self.path for p in paths)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in ("created", "modified", "moved", "deleted"):
            return
        if self._touches_crontab(event):
            logger.debug(f"Crontab {event.event_type}: {event.src_path}")
            self.signal.notify()


class CrontabWatcher:
    """Watches the crontab's directory and signals reloads.

    Editors often replace a file instead of writing it in place, so the
    parent directory is watched and events are filtered by path.
    """

    def __init__(self, path: str | Path, signal: ReloadSignal):
        self.path = Path(path).expanduser().resolve()
        self.signal = signal
        self.observer = Observer()
        self._started = False

    def start(self) -> None:
        handler = CrontabEventHandler(self.path, self.signal)
        self.observer.schedule(handler, str(self.path.parent), recursive=False)
        self.observer.start()
        self._started = True
        logger.info(f"Watching {self.path} for changes")

    def stop(self) -> None:
        if self._started:
            self.observer.stop()
            self.observer.join()
            self._started = False

    def check(self) -> None:
        """Raise if the observer thread has died.

        Raises:
            WatcherError: If the watcher was started and is no longer alive
        """
        if self._started and not self.observer.is_alive():
            raise WatcherError(f"file watcher for {self.path} stopped unexpectedly")
