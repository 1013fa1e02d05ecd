"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class LogName(str, Enum):
    """Plain-text logs written next to each other in the log directory."""

    raw = "log_raw.txt"
    hour = "log_hour.txt"
    day = "log_day.txt"


class Granularity(str, Enum):
    """Calendar units a rolling average is kept for."""

    hour = "hour"
    day = "day"

    @property
    def log_name(self) -> LogName:
        return LogName.hour if self is Granularity.hour else LogName.day

    def unit_id(self, moment: datetime) -> int:
        """Hour of day (0-23) or day of year (0-365) for ``moment``."""
        if self is Granularity.hour:
            return moment.hour
        return moment.timetuple().tm_yday - 1


@dataclass(frozen=True, slots=True)
class Reading:
    """A single value assembled from the serial stream."""

    timestamp: datetime
    value: float


@dataclass(slots=True)
class AggregationWindow:
    """Running sum and count for the unit last seen on the wall clock."""

    unit_id: int
    sum: float = 0.0
    count: int = 0

    def reset(self, unit_id: int) -> None:
        self.sum = 0.0
        self.count = 0
        self.unit_id = unit_id


@dataclass(frozen=True, slots=True)
class Rollover:
    """Average flushed when a window's unit changes."""

    granularity: Granularity
    timestamp: datetime
    average: float
