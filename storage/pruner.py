"""Age-based pruning of the plain-text logs."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from models.records import LogName
from models.retention import DEFAULT_POLICIES, RetentionPolicy

logger = logging.getLogger(__name__)

_LEADING_TIMESTAMP = re.compile(r"(\d{4})-(\d{2})-(\d{2}) (\d{2}):(\d{2}):(\d{2})", re.ASCII)


@dataclass
class PruneResult:
    """Outcome of pruning a single log."""

    log_name: LogName
    retained: int = 0
    dropped: int = 0
    source_missing: bool = False
    failed: bool = False


def parse_leading_timestamp(line: str) -> Optional[datetime]:
    """Local time at the start of ``line``, or ``None`` if it has none."""
    match = _LEADING_TIMESTAMP.match(line)
    if match is None:
        return None
    try:
        return datetime(*(int(part) for part in match.groups()))
    except ValueError:
        return None


def _record_epoch(line: str) -> Optional[float]:
    recorded_at = parse_leading_timestamp(line)
    if recorded_at is None:
        return None
    try:
        return recorded_at.timestamp()
    except (OverflowError, OSError, ValueError):
        return None


class RetentionPruner:
    """Rewrites a log keeping only records younger than a threshold.

    Lines without a leading ``YYYY-MM-DD HH:MM:SS`` timestamp are dropped too;
    existing logs depend on that, so malformed content does not survive a pass.
    """

    def __init__(self, root_path: Path, clock: Callable[[], datetime] = datetime.now) -> None:
        self.root_path = root_path
        self._clock = clock

    def prune(self, log_name: LogName, max_age_seconds: float) -> PruneResult:
        result = PruneResult(log_name=log_name)
        source = self.root_path / log_name.value
        if not source.exists():
            result.source_missing = True
            return result

        temp_path = source.with_name(f"{source.name}.tmp")
        # Naive local datetimes resolve DST through the platform, like mktime.
        now_ts = self._clock().timestamp()

        # Retained lines are copied byte for byte, line endings and stray bytes included.
        try:
            with source.open(
                "r", encoding="utf-8", errors="surrogateescape", newline=""
            ) as src, temp_path.open(
                "w", encoding="utf-8", errors="surrogateescape", newline=""
            ) as dst:
                for line in src:
                    recorded_ts = _record_epoch(line)
                    if recorded_ts is None or now_ts - recorded_ts > max_age_seconds:
                        result.dropped += 1
                        continue
                    dst.write(line)
                    result.retained += 1

            os.replace(temp_path, source)
        except OSError as exc:
            logger.warning(
                "log prune skipped",
                extra={"log_name": log_name.value, "reason": str(exc)},
            )
            self._discard(temp_path)
            result.failed = True
            return result

        logger.info(
            "removed records older than %d sec",
            max_age_seconds,
            extra={
                "log_name": log_name.value,
                "max_age_seconds": max_age_seconds,
                "retained": result.retained,
                "dropped": result.dropped,
            },
        )
        return result

    @staticmethod
    def _discard(temp_path: Path) -> None:
        try:
            temp_path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning(
                "temporary prune file left behind",
                extra={"log_name": temp_path.name, "reason": str(exc)},
            )

    def prune_all(self, policies: Iterable[RetentionPolicy] = DEFAULT_POLICIES) -> List[PruneResult]:
        """Apply each policy in turn; the passes are independent of each other."""
        return [self.prune(policy.log_name, policy.max_age_seconds) for policy in policies]
