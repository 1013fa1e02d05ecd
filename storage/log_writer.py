from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from models.records import LogName

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def format_record(timestamp: str, value: float) -> str:
    return f"{timestamp} | {value:.2f}\n"


class LogWriter:
    """Appends ``<timestamp> | <value>`` lines, opening the file per call."""

    def __init__(self, root_path: Path) -> None:
        self.root_path = root_path

    def path_for(self, log_name: LogName) -> Path:
        return self.root_path / log_name.value

    def append(self, log_name: LogName, timestamp: str, value: float) -> bool:
        path = self.path_for(log_name)
        try:
            with path.open("a", encoding="utf-8") as handle:
                handle.write(format_record(timestamp, value))
        except OSError as exc:
            logger.warning(
                "log append skipped",
                extra={"log_name": log_name.value, "reason": str(exc)},
            )
            return False
        return True
