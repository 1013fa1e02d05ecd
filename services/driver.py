"""Polling loop tying the serial device to the logs."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from device.byte_source import ByteSource
from models.records import AggregationWindow, Granularity, LogName, Reading, Rollover
from models.retention import DEFAULT_POLICIES, RetentionPolicy
from services.aggregator import RollingAggregator
from services.assembler import LineAssembler
from settings import Settings, get_settings
from storage.log_writer import LogWriter, format_timestamp
from storage.pruner import PruneResult, RetentionPruner

logger = logging.getLogger(__name__)


class DriverLoop:
    """Polls a byte source one byte at a time and persists what it assembles.

    Aggregation windows belong to the loop and start at the units current at
    construction, so a restart never flushes a false rollover but loses any
    partial hour or day collected before it.
    """

    def __init__(
        self,
        source: ByteSource,
        assembler: LineAssembler,
        aggregator: RollingAggregator,
        writer: LogWriter,
        pruner: RetentionPruner,
        policies: Iterable[RetentionPolicy] = DEFAULT_POLICIES,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval: float = 0.01,
        prune_interval: float = 3600.0,
    ) -> None:
        self.source = source
        self.assembler = assembler
        self.aggregator = aggregator
        self.writer = writer
        self.pruner = pruner
        self.policies = tuple(policies)
        self.poll_interval = poll_interval
        self.prune_interval = prune_interval
        self._clock = clock
        self._sleep = sleep
        self.windows: Dict[Granularity, AggregationWindow] = aggregator.open_windows(clock())
        self.last_prune: Optional[datetime] = None

    def step(self) -> Optional[Reading]:
        """Run one poll iteration and return the reading it completed, if any."""
        chunk = self.source.read(1)
        if not chunk:
            self._sleep(self.poll_interval)
            return None

        reading = self.assembler.feed(chunk[0])
        if reading is None:
            return None

        self.handle_reading(reading)
        self.prune_if_due()
        return reading

    def handle_reading(self, reading: Reading) -> List[Rollover]:
        timestamp = format_timestamp(reading.timestamp)
        logger.info("%s raw: %.1f", timestamp, reading.value, extra={"value": reading.value})
        self.writer.append(LogName.raw, timestamp, reading.value)

        rollovers: List[Rollover] = []
        for granularity in (Granularity.hour, Granularity.day):
            # Units come from the wall clock now, not from the reading's timestamp.
            current_unit = granularity.unit_id(self._clock())
            rollover = self.aggregator.observe(
                granularity, self.windows[granularity], reading, current_unit
            )
            if rollover is None:
                continue
            self.writer.append(granularity.log_name, timestamp, rollover.average)
            rollovers.append(rollover)
        return rollovers

    def prune_if_due(self) -> List[PruneResult]:
        now = self._clock()
        if (
            self.last_prune is not None
            and (now - self.last_prune).total_seconds() <= self.prune_interval
        ):
            return []

        logger.info("cleanup logs")
        results = self.pruner.prune_all(self.policies)
        self.last_prune = now
        return results

    def run(self, should_stop: Callable[[], bool] = lambda: False) -> None:
        """Poll until ``should_stop`` returns true; by default that is never."""
        while not should_stop():
            self.step()


def build_driver(
    source: ByteSource,
    settings: Optional[Settings] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> DriverLoop:
    """Factory that wires the loop against the configured log directory."""
    settings = settings or get_settings()
    root = Path(settings.log_dir)
    return DriverLoop(
        source=source,
        assembler=LineAssembler(capacity=settings.buffer_capacity, clock=clock),
        aggregator=RollingAggregator(),
        writer=LogWriter(root),
        pruner=RetentionPruner(root, clock=clock),
        clock=clock,
        poll_interval=settings.poll_interval,
        prune_interval=settings.prune_interval,
    )
