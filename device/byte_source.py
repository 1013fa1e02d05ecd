"""Byte sources the driver loop polls for serial data."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import serial

logger = logging.getLogger(__name__)


class DeviceOpenError(RuntimeError):
    """Raised when the device behind a byte source cannot be opened."""


class ByteSource(Protocol):
    """Non-blocking byte supplier: ``read`` returns ``b""`` when nothing is ready."""

    def open(self) -> None: ...

    def read(self, max_bytes: int = 1) -> bytes: ...

    def close(self) -> None: ...


class SerialByteSource:
    """Serial device opened through pyserial at 8N1 with a short read timeout.

    pyserial picks the POSIX or Windows backend at import time, so one class
    covers both hosts. ``device`` may be a path (``/dev/ttyUSB0``), a port name
    (``COM3``) or a pyserial URL such as ``loop://`` or ``socket://host:port``.
    """

    def __init__(self, device: str, baud_rate: int = 9600, timeout: float = 0.05) -> None:
        self.device = device
        self.baud_rate = baud_rate
        self.timeout = timeout
        self._port: Optional[serial.SerialBase] = None

    @property
    def is_open(self) -> bool:
        return self._port is not None and self._port.is_open

    def open(self) -> None:
        try:
            port = serial.serial_for_url(self.device, do_not_open=True)
            port.baudrate = self.baud_rate
            port.bytesize = serial.EIGHTBITS
            port.parity = serial.PARITY_NONE
            port.stopbits = serial.STOPBITS_ONE
            port.timeout = self.timeout
            port.xonxoff = False
            port.rtscts = False
            port.open()
        except (serial.SerialException, OSError, ValueError) as exc:
            raise DeviceOpenError(f"can't open port {self.device!r}: {exc}") from exc
        self._port = port
        logger.info("serial port opened", extra={"device": self.device})

    def read(self, max_bytes: int = 1) -> bytes:
        if not self.is_open:
            return b""
        assert self._port is not None
        try:
            return self._port.read(max_bytes)
        except (serial.SerialException, OSError) as exc:
            # A vanished device looks the same as a quiet one to the caller.
            logger.debug("serial read failed", extra={"device": self.device, "reason": str(exc)})
            return b""

    def close(self) -> None:
        if self._port is None:
            return
        try:
            self._port.close()
        finally:
            self._port = None

    def __enter__(self) -> "SerialByteSource":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ReplayByteSource:
    """Replays captured bytes, then behaves like an idle device."""

    def __init__(self, data: bytes = b"") -> None:
        self._data = bytearray(data)
        self.closed = False

    def feed(self, data: bytes) -> None:
        """Queue more bytes behind whatever has not been read yet."""
        self._data.extend(data)

    def open(self) -> None:
        self.closed = False

    def read(self, max_bytes: int = 1) -> bytes:
        if self.closed or not self._data:
            return b""
        chunk = bytes(self._data[:max_bytes])
        del self._data[:max_bytes]
        return chunk

    def close(self) -> None:
        self.closed = True
