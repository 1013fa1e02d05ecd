"""Assemble newline-delimited readings from a byte stream."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Callable, Optional

from models.records import Reading

DELIMITER = 0x0A
DEFAULT_CAPACITY = 64

# Longest leading decimal literal, the way C's atof reads it.
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_value(raw: bytes) -> float:
    """Parse the leading number in ``raw``; anything unparseable is ``0.0``."""
    text = raw.decode("ascii", errors="replace")
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        return 0.0
    try:
        return float(match.group(1))
    except ValueError:
        return 0.0


class LineAssembler:
    """Single-pass line buffer with a fixed capacity.

    One slot is kept for the terminator, so at most ``capacity - 1`` bytes of a
    record are stored. Bytes arriving while the buffer is full are dropped and
    the record is truncated when its delimiter finally shows up.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if capacity < 2:
            raise ValueError("Line buffer capacity must be at least 2 bytes.")
        self.capacity = capacity
        self._clock = clock
        self._buffer = bytearray(capacity)
        self._cursor = 0

    @property
    def pending(self) -> bytes:
        """Bytes of the record currently being accumulated."""
        return bytes(self._buffer[: self._cursor])

    def feed(self, byte: int) -> Optional[Reading]:
        if byte == DELIMITER:
            value = parse_value(self._buffer[: self._cursor])
            self._cursor = 0
            timestamp = self._clock().replace(microsecond=0)
            return Reading(timestamp=timestamp, value=value)

        if self._cursor < self.capacity - 1:
            self._buffer[self._cursor] = byte
            self._cursor += 1
        return None

    def feed_bytes(self, data: bytes) -> list[Reading]:
        readings: list[Reading] = []
        for byte in data:
            reading = self.feed(byte)
            if reading is not None:
                readings.append(reading)
        return readings
