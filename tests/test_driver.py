from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import List

import pytest

from device.byte_source import ReplayByteSource
from models.records import Granularity, Reading
from services.aggregator import RollingAggregator
from services.assembler import LineAssembler
from services.driver import DriverLoop, build_driver
from settings import Settings
from storage.log_writer import LogWriter
from storage.pruner import RetentionPruner


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 5, 10, 15, 0))


@pytest.fixture()
def source() -> ReplayByteSource:
    return ReplayByteSource()


@pytest.fixture()
def sleeps() -> List[float]:
    return []


@pytest.fixture()
def driver(tmp_path: Path, source: ReplayByteSource, clock: FakeClock, sleeps: List[float]) -> DriverLoop:
    return DriverLoop(
        source=source,
        assembler=LineAssembler(clock=clock),
        aggregator=RollingAggregator(),
        writer=LogWriter(tmp_path),
        pruner=RetentionPruner(tmp_path, clock=clock),
        clock=clock,
        sleep=sleeps.append,
    )


def _drain(driver: DriverLoop, sleeps: List[float]) -> List[Reading]:
    """Step until the loop hits an empty read."""
    readings: List[Reading] = []
    slept = len(sleeps)
    while len(sleeps) == slept:
        reading = driver.step()
        if reading is not None:
            readings.append(reading)
    return readings


def test_end_to_end_hour_rollover(
    tmp_path: Path, driver: DriverLoop, source: ReplayByteSource, clock: FakeClock, sleeps: List[float]
) -> None:
    source.feed(b"23.5\n24.0\n")
    readings = _drain(driver, sleeps)

    assert [reading.value for reading in readings] == [23.5, 24.0]
    assert (tmp_path / "log_raw.txt").read_text() == (
        "2024-03-05 10:15:00 | 23.50\n2024-03-05 10:15:00 | 24.00\n"
    )
    assert not (tmp_path / "log_hour.txt").exists()
    assert not (tmp_path / "log_day.txt").exists()

    clock.now = datetime(2024, 3, 5, 11, 0, 1)
    source.feed(b"25.0\n")
    _drain(driver, sleeps)

    assert (tmp_path / "log_hour.txt").read_text() == "2024-03-05 11:00:01 | 24.17\n"
    assert not (tmp_path / "log_day.txt").exists()
    window = driver.windows[Granularity.hour]
    assert (window.sum, window.count, window.unit_id) == (0.0, 0, 11)


def test_day_rollover_writes_daily_average(
    tmp_path: Path, driver: DriverLoop, source: ReplayByteSource, clock: FakeClock, sleeps: List[float]
) -> None:
    source.feed(b"10\n")
    _drain(driver, sleeps)

    clock.now = datetime(2024, 3, 6, 0, 0, 5)
    source.feed(b"20\n")
    _drain(driver, sleeps)

    assert (tmp_path / "log_day.txt").read_text() == "2024-03-06 00:00:05 | 15.00\n"
    assert (tmp_path / "log_hour.txt").read_text() == "2024-03-06 00:00:05 | 15.00\n"


def test_malformed_token_is_logged_as_zero(
    tmp_path: Path, driver: DriverLoop, source: ReplayByteSource, sleeps: List[float]
) -> None:
    source.feed(b"abc\n")
    _drain(driver, sleeps)

    assert (tmp_path / "log_raw.txt").read_text() == "2024-03-05 10:15:00 | 0.00\n"


def test_empty_read_sleeps_for_poll_interval(driver: DriverLoop, sleeps: List[float]) -> None:
    assert driver.step() is None
    assert sleeps == [0.01]


def test_partial_record_does_not_sleep_or_write(
    tmp_path: Path, driver: DriverLoop, source: ReplayByteSource, sleeps: List[float]
) -> None:
    source.feed(b"12")

    assert driver.step() is None
    assert driver.step() is None
    assert sleeps == []
    assert not (tmp_path / "log_raw.txt").exists()


def test_prune_runs_on_first_reading_then_after_interval(
    tmp_path: Path, driver: DriverLoop, source: ReplayByteSource, clock: FakeClock, sleeps: List[float]
) -> None:
    stale = (clock.now - timedelta(days=2)).strftime("%Y-%m-%d %H:%M:%S")
    (tmp_path / "log_raw.txt").write_text(f"{stale} | 1.00\n")

    source.feed(b"5\n")
    _drain(driver, sleeps)

    assert (tmp_path / "log_raw.txt").read_text() == "2024-03-05 10:15:00 | 5.00\n"
    first_prune = driver.last_prune
    assert first_prune == clock.now

    clock.now = clock.now + timedelta(seconds=3600)
    assert driver.prune_if_due() == []
    assert driver.last_prune == first_prune

    clock.now = clock.now + timedelta(seconds=1)
    results = driver.prune_if_due()
    assert len(results) == 3
    assert driver.last_prune == clock.now


def test_restart_does_not_flush_partial_window(
    tmp_path: Path, source: ReplayByteSource, clock: FakeClock, sleeps: List[float]
) -> None:
    clock.now = datetime(2024, 3, 5, 23, 59, 0)
    restarted = DriverLoop(
        source=source,
        assembler=LineAssembler(clock=clock),
        aggregator=RollingAggregator(),
        writer=LogWriter(tmp_path),
        pruner=RetentionPruner(tmp_path, clock=clock),
        clock=clock,
        sleep=sleeps.append,
    )
    source.feed(b"7\n")
    _drain(restarted, sleeps)

    assert restarted.windows[Granularity.hour].unit_id == 23
    assert restarted.windows[Granularity.day].unit_id == 64
    assert not (tmp_path / "log_hour.txt").exists()


def test_run_stops_when_requested(driver: DriverLoop, source: ReplayByteSource, sleeps: List[float]) -> None:
    source.feed(b"1\n2\n")
    checks = iter(range(10))

    driver.run(should_stop=lambda: next(checks) >= 5)

    assert driver.windows[Granularity.hour].count == 2
    assert sleeps == [0.01]


def test_build_driver_uses_settings(tmp_path: Path, source: ReplayByteSource) -> None:
    settings = Settings(
        log_dir=str(tmp_path),
        baud_rate=9600,
        read_timeout=0.05,
        poll_interval=0.2,
        prune_interval=60.0,
        buffer_capacity=16,
        log_level="INFO",
    )

    loop = build_driver(source, settings)

    assert loop.poll_interval == 0.2
    assert loop.prune_interval == 60.0
    assert loop.assembler.capacity == 16
    assert loop.writer.root_path == tmp_path
    assert loop.pruner.root_path == tmp_path


def test_prune_failure_does_not_stop_the_loop(
    tmp_path: Path, driver: DriverLoop, source: ReplayByteSource, sleeps: List[float]
) -> None:
    (tmp_path / "log_raw.txt.tmp").mkdir()
    source.feed(b"1\n")

    readings = _drain(driver, sleeps)

    assert [reading.value for reading in readings] == [1.0]
    assert driver.last_prune is not None
    assert (tmp_path / "log_raw.txt").read_text() == "2024-03-05 10:15:00 | 1.00\n"

    driver.last_prune = None
    source.feed(b"2\n")
    readings = _drain(driver, sleeps)

    assert [reading.value for reading in readings] == [2.0]
    assert (tmp_path / "log_raw.txt").read_text() == (
        "2024-03-05 10:15:00 | 1.00\n2024-03-05 10:15:00 | 2.00\n"
    )
