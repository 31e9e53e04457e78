"""Dispatch loop for crontab entries.

One sequential loop owns the entry list, the memoized next runs and the
pending batch. Each iteration:

1. Applies a pending reload (and drops any armed batch)
2. Launches the armed batch, if any, then cools down briefly
3. Finds the nearest next run; when it is within the lookahead window,
   arms every entry sharing that exact instant and sleeps until it,
   otherwise sleeps for the poll interval (or until the next run)
"""
import asyncio
from datetime import datetime
from typing import Awaitable, Callable

from loguru import logger

from ...config import Settings
from ..executor import CommandExecutor
from ..models import Entry
from ..schedule import local_now
from ..types import CrontabParseError, ScheduleError
from .store import CrontabStore
from .watcher import CrontabWatcher, ReloadSignal

logger = logger.bind(module="scheduler.service")

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]


class SchedulerService:
    """Runs crontab entries at their scheduled times.

    ``entries`` is None while the crontab fails to parse (degraded state);
    nothing is scheduled until a later reload succeeds.
    """

    def __init__(
        self,
        store: CrontabStore,
        executor: CommandExecutor,
        settings: Settings | None = None,
        reload_signal: ReloadSignal | None = None,
        watcher: CrontabWatcher | None = None,
        clock: Clock = local_now,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize the service.

        Args:
            store: Source of crontab entries
            executor: Launches dispatched commands
            settings: Loop timing (defaults to Settings())
            reload_signal: Posted to by the watcher when the crontab changes
            watcher: Checked for liveness once per iteration
            clock: Returns the current local time
            sleep: Awaitable sleep, in seconds
        """
        self.store = store
        self.executor = executor
        self.settings = settings or Settings()
        self.reload_signal = reload_signal or ReloadSignal()
        self.watcher = watcher
        self._clock = clock
        self._sleep = sleep

        self.entries: list[Entry] | None = None
        self.disabled: list[Entry] = []
        self._pending: list[Entry] = []
        self._launches: set[asyncio.Task] = set()

    @property
    def pending(self) -> list[Entry]:
        """Entries armed for the next dispatch."""
        return list(self._pending)

    # ============== Reload ==============

    def reload(self) -> bool:
        """Replace the entry set from the store.

        On failure the service enters the degraded state. The armed batch is
        dropped either way.

        Returns:
            True if the crontab parsed
        """
        self._pending = []
        self.disabled = []
        try:
            self.entries = self.store.load()
            return True
        except CrontabParseError as e:
            logger.error(f"Wrong crontab format, scheduling nothing: {e}")
        except UnicodeDecodeError as e:
            logger.error(f"Crontab {self.store.path} is not valid UTF-8, scheduling nothing: {e}")
        except OSError as e:
            logger.error(f"Failed to read crontab {self.store.path}: {e}")
        self.entries = None
        return False

    # ============== Loop ==============

    async def run(self) -> None:
        """Load the crontab and loop forever.

        Raises:
            WatcherError: If the file watcher dies
        """
        self.reload()
        while True:
            if self.watcher is not None:
                self.watcher.check()
            delay = await self.tick()
            await self._sleep(delay)

    async def tick(self) -> float:
        """Run one loop iteration.

        Returns:
            Seconds to sleep before the next iteration
        """
        if self.reload_signal.consume():
            logger.info("Detected crontab update, reloading file")
            self.reload()

        if self._pending:
            self._dispatch(self._pending)
            self._pending = []
            await self._sleep(self.settings.cooldown_ms / 1000)

        delay = self.settings.poll_interval_ms / 1000
        if self.entries is None:
            logger.debug("No valid crontab, doing nothing")
            return delay

        now = self._clock()
        nearest = self._nearest(self.entries, now)
        if nearest is None:
            return delay

        until = max((nearest - now).total_seconds(), 0.0)
        if until < self.settings.lookahead_ms / 1000:
            self._pending = [
                entry for entry in self.entries
                if entry.next_run(now) == nearest
            ]
            logger.debug(f"Armed {len(self._pending)} entries for {nearest:%Y-%m-%d %H:%M}")
            return until

        return min(delay, until)

    def _nearest(self, entries: list[Entry], now: datetime) -> datetime | None:
        """Earliest next run across entries, disabling unsatisfiable ones."""
        nearest = None

        for entry in list(entries):
            try:
                run = entry.next_run(now)
            except ScheduleError as e:
                logger.error(f"Disabling entry at {entry.describe()}: {e}")
                entries.remove(entry)
                self.disabled.append(entry)
                continue
            if nearest is None or run < nearest:
                nearest = run

        return nearest

    # ============== Dispatch ==============

    def _dispatch(self, batch: list[Entry]) -> None:
        """Hand every command in the batch to the executor, without waiting."""
        logger.info(
            f"Running {len(batch)} scheduled task{'' if len(batch) == 1 else 's'}"
        )
        for entry in batch:
            task = asyncio.create_task(self._launch(entry))
            self._launches.add(task)
            task.add_done_callback(self._launches.discard)

    async def _launch(self, entry: Entry) -> None:
        try:
            await self.executor.launch(entry.command)
        except Exception as e:
            logger.error(f"Failed to launch {entry.describe()}: {e}")

    async def flush_launches(self) -> None:
        """Wait until every requested launch has been handed to the OS."""
        if self._launches:
            await asyncio.gather(*list(self._launches))
