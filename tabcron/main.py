"""Command-line entry point.

Commands:
- daemon: run the scheduler until interrupted (default)
- validate: parse the crontab and report the first error
- preview: show the next runs of every entry
"""
import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .config import Settings, settings as default_settings
from .scheduler.executor import ShellExecutor
from .scheduler.schedule import format_run, local_now, upcoming_runs
from .scheduler.service import CrontabStore, CrontabWatcher, ReloadSignal, SchedulerService
from .scheduler.types import CrontabParseError, ScheduleError, WatcherError

DEFAULT_PREVIEW_COUNT = 5
LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]} - {message}"


def setup_logging(settings: Settings) -> None:
    """Replace loguru's default sink with ours."""
    logger.remove()
    logger.configure(extra={"module": "main"})
    logger.add(sys.stderr, level=settings.log_level, format=LOG_FORMAT)
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(settings.log_file),
            level=settings.log_level,
            format=LOG_FORMAT,
            rotation="10 MB",
        )


async def _serve(service: SchedulerService) -> None:
    try:
        await service.run()
    finally:
        await service.flush_launches()


def command_daemon(settings: Settings) -> int:
    store = CrontabStore(settings.crontab_path)
    store.ensure_exists()

    reload_signal = ReloadSignal()
    watcher = CrontabWatcher(store.path, reload_signal)
    watcher.start()

    service = SchedulerService(
        store=store,
        executor=ShellExecutor(),
        settings=settings,
        reload_signal=reload_signal,
        watcher=watcher,
    )

    logger.info(f"Scheduler started with crontab {store.path}")
    try:
        asyncio.run(_serve(service))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except WatcherError as e:
        logger.critical(f"{e}; crontab changes would go unnoticed, exiting")
        return 1
    finally:
        watcher.stop()
    return 0


def command_validate(settings: Settings) -> int:
    store = CrontabStore(settings.crontab_path)
    try:
        entries = store.load()
    except (CrontabParseError, UnicodeDecodeError, OSError) as e:
        print(f"{store.path}: {e}")
        return 1

    print(f"{store.path}: {len(entries)} entries OK")
    return 0


def command_preview(settings: Settings, count: int) -> int:
    store = CrontabStore(settings.crontab_path)
    try:
        entries = store.load()
    except (CrontabParseError, UnicodeDecodeError, OSError) as e:
        print(f"{store.path}: {e}")
        return 1

    now = local_now()
    for entry in entries:
        print(f"[line {entry.lineno}] {entry.expression}  {entry.command}")
        try:
            runs = upcoming_runs(entry.schedule, start=now, count=count)
        except ScheduleError as e:
            print(f"  never runs: {e}")
            continue
        for run in runs:
            print(f"  {format_run(run, now)}")
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tabcron",
        description="Run commands on crontab-style schedules.",
    )
    parser.add_argument("--crontab", help="Path to the crontab file")
    parser.add_argument("--log-level", help="Log level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("daemon", help="Run the scheduler loop (default)")
    subparsers.add_parser("validate", help="Check the crontab for errors")
    preview_parser = subparsers.add_parser("preview", help="Show upcoming runs")
    preview_parser.add_argument(
        "--count", type=int, default=DEFAULT_PREVIEW_COUNT, help="Runs per entry"
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    settings = default_settings
    if args.crontab:
        settings = replace(settings, crontab_path=Path(args.crontab).expanduser())
    if args.log_level:
        settings = replace(settings, log_level=args.log_level.upper())

    setup_logging(settings)

    if args.command == "validate":
        return command_validate(settings)
    if args.command == "preview":
        return command_preview(settings, count=args.count)
    return command_daemon(settings)


if __name__ == "__main__":
    sys.exit(main())
