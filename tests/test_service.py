"""Tests for the dispatch loop."""
import pytest
from datetime import datetime, timedelta
from pathlib import Path
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from tabcron.config import Settings
from tabcron.scheduler.service import CrontabStore, SchedulerService
from tabcron.scheduler.types import WatcherError


class FakeClock:
    """Clock whose sleep advances time instantly."""

    def __init__(self, now: datetime):
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> datetime:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += timedelta(seconds=seconds)


class RecordingExecutor:
    """Records launched commands, failing for the given ones."""

    def __init__(self, fail_on: tuple[str, ...] = ()):
        self.fail_on = fail_on
        self.launched: list[str] = []

    async def launch(self, command: str) -> None:
        if command in self.fail_on:
            raise OSError(f"cannot launch {command}")
        self.launched.append(command)


class DeadWatcher:
    def check(self) -> None:
        raise WatcherError("watcher stopped")


def make_service(tmp_path: Path, text: str, now: datetime, executor=None):
    crontab = tmp_path / "crontab"
    crontab.write_text(text, encoding="utf-8")
    clock = FakeClock(now)
    service = SchedulerService(
        store=CrontabStore(crontab),
        executor=executor or RecordingExecutor(),
        settings=Settings(crontab_path=crontab),
        clock=clock,
        sleep=clock.sleep,
    )
    service.reload()
    return service, clock, crontab


class TestDispatchLoop:
    """Tests for arming, batching and dispatch."""

    @pytest.mark.asyncio
    async def test_entries_sharing_a_minute_fire_together(self, tmp_path):
        text = "*/5 * * * * job-a\n*/5 * * * * job-b\n0 * * * * hourly\n"
        service, clock, _ = make_service(tmp_path, text, datetime(2024, 6, 1, 10, 4, 55))

        delay = await service.tick()
        assert delay == 5.0
        assert sorted(e.command for e in service.pending) == ["job-a", "job-b"]

        await clock.sleep(delay)
        delay = await service.tick()
        await service.flush_launches()

        assert sorted(service.executor.launched) == ["job-a", "job-b"]
        assert service.pending == []
        assert clock.sleeps[-1] == 0.5
        assert delay == 10.0

    @pytest.mark.asyncio
    async def test_coinciding_schedules_share_batch(self, tmp_path):
        text = "*/5 * * * * job-a\n0 * * * * hourly\n0 11 * * * daily\n"
        service, _, _ = make_service(tmp_path, text, datetime(2024, 6, 1, 10, 59, 58))

        await service.tick()

        assert sorted(e.command for e in service.pending) == ["daily", "hourly", "job-a"]

    @pytest.mark.asyncio
    async def test_exact_boundary_fires_once(self, tmp_path):
        service, clock, _ = make_service(tmp_path, "*/5 * * * * job\n", datetime(2024, 6, 1, 10, 5))

        assert await service.tick() == 0.0
        assert len(service.pending) == 1

        await service.tick()
        await service.flush_launches()
        await service.tick()
        await service.flush_launches()

        assert service.executor.launched == ["job"]
        assert service.entries[0].cached_next_run == datetime(2024, 6, 1, 10, 10)

    @pytest.mark.asyncio
    async def test_far_deadline_polls(self, tmp_path):
        service, clock, _ = make_service(tmp_path, "0 12 * * * noon\n", datetime(2024, 6, 1, 11, 59, 45))

        assert await service.tick() == 10.0
        assert service.pending == []

        clock.now = datetime(2024, 6, 1, 11, 59, 52)
        assert await service.tick() == 8.0
        assert len(service.pending) == 1

    @pytest.mark.asyncio
    async def test_sleeps_until_deadline_when_closer_than_poll(self, tmp_path):
        crontab = tmp_path / "crontab"
        crontab.write_text("0 12 * * * noon\n", encoding="utf-8")
        clock = FakeClock(datetime(2024, 6, 1, 11, 59, 55))
        service = SchedulerService(
            store=CrontabStore(crontab),
            executor=RecordingExecutor(),
            settings=Settings(crontab_path=crontab, poll_interval_ms=60000, lookahead_ms=2000),
            clock=clock,
            sleep=clock.sleep,
        )
        service.reload()

        assert await service.tick() == 5.0
        assert service.pending == []

    @pytest.mark.asyncio
    async def test_empty_crontab_polls(self, tmp_path):
        service, _, _ = make_service(tmp_path, "# nothing yet\n", datetime(2024, 6, 1, 10, 0))

        assert service.entries == []
        assert await service.tick() == 10.0


class TestReload:
    """Tests for reload handling."""

    @pytest.mark.asyncio
    async def test_reload_discards_armed_batch(self, tmp_path):
        service, clock, crontab = make_service(tmp_path, "*/5 * * * * old\n", datetime(2024, 6, 1, 10, 4, 55))

        delay = await service.tick()
        assert len(service.pending) == 1

        crontab.write_text("0 12 * * * new\n", encoding="utf-8")
        service.reload_signal.notify()
        await clock.sleep(delay)
        await service.tick()
        await service.flush_launches()

        assert service.executor.launched == []
        assert service.pending == []
        assert [e.command for e in service.entries] == ["new"]

    @pytest.mark.asyncio
    async def test_malformed_reload_enters_degraded_state(self, tmp_path):
        service, clock, crontab = make_service(tmp_path, "*/5 * * * * job\n", datetime(2024, 6, 1, 10, 4, 55))
        await service.tick()

        crontab.write_text("*/5 * * * * job\n0 0 0 * * bad\n", encoding="utf-8")
        service.reload_signal.notify()
        delay = await service.tick()
        await service.flush_launches()

        assert service.entries is None
        assert service.pending == []
        assert service.executor.launched == []
        assert delay == 10.0

        crontab.write_text("*/5 * * * * job\n", encoding="utf-8")
        service.reload_signal.notify()
        clock.now = datetime(2024, 6, 1, 10, 9, 58)
        await service.tick()

        assert len(service.entries) == 1
        assert len(service.pending) == 1

    def test_missing_file_enters_degraded_state(self, tmp_path):
        service, _, crontab = make_service(tmp_path, "*/5 * * * * job\n", datetime(2024, 6, 1, 10, 0))

        crontab.unlink()
        assert service.reload() is False
        assert service.entries is None

    @pytest.mark.asyncio
    async def test_undecodable_file_enters_degraded_state(self, tmp_path):
        service, _, crontab = make_service(tmp_path, "*/5 * * * * job\n", datetime(2024, 6, 1, 10, 4, 55))
        await service.tick()

        crontab.write_bytes(b"*/5 * * * * echo \xff\xfe\n")
        service.reload_signal.notify()
        delay = await service.tick()

        assert service.entries is None
        assert service.pending == []
        assert delay == 10.0


class TestFailures:
    """Tests for per-entry and per-launch failures."""

    @pytest.mark.asyncio
    async def test_unsatisfiable_entry_disabled(self, tmp_path):
        text = "0 0 31 2 * never\n*/5 * * * * ok\n"
        service, _, _ = make_service(tmp_path, text, datetime(2024, 6, 1, 10, 4, 55))

        await service.tick()

        assert [e.command for e in service.disabled] == ["never"]
        assert [e.command for e in service.entries] == ["ok"]
        assert [e.command for e in service.pending] == ["ok"]

    @pytest.mark.asyncio
    async def test_launch_failure_does_not_stop_loop(self, tmp_path):
        text = "*/5 * * * * bad\n*/5 * * * * good\n"
        executor = RecordingExecutor(fail_on=("bad",))
        service, clock, _ = make_service(tmp_path, text, datetime(2024, 6, 1, 10, 4, 55), executor)

        await clock.sleep(await service.tick())
        await service.tick()
        await service.flush_launches()
        assert executor.launched == ["good"]

        clock.now = datetime(2024, 6, 1, 10, 9, 55)
        await clock.sleep(await service.tick())
        await service.tick()
        await service.flush_launches()
        assert executor.launched == ["good", "good"]

    @pytest.mark.asyncio
    async def test_dead_watcher_stops_run(self, tmp_path):
        crontab = tmp_path / "crontab"
        crontab.write_text("*/5 * * * * job\n", encoding="utf-8")
        clock = FakeClock(datetime(2024, 6, 1, 10, 0))
        service = SchedulerService(
            store=CrontabStore(crontab),
            executor=RecordingExecutor(),
            watcher=DeadWatcher(),
            clock=clock,
            sleep=clock.sleep,
        )

        with pytest.raises(WatcherError):
            await service.run()

        assert len(service.entries) == 1
