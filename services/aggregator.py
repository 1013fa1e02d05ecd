"""Rolling hourly and daily averages for sensor readings."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Optional

from models.records import AggregationWindow, Granularity, Reading, Rollover

logger = logging.getLogger(__name__)


class RollingAggregator:
    """Stateless rollover logic; callers own the windows it updates."""

    def open_windows(self, now: datetime) -> Dict[Granularity, AggregationWindow]:
        """Fresh windows keyed to the units ``now`` falls in."""
        return {
            granularity: AggregationWindow(unit_id=granularity.unit_id(now))
            for granularity in Granularity
        }

    def observe(
        self,
        granularity: Granularity,
        window: AggregationWindow,
        reading: Reading,
        current_unit_id: int,
    ) -> Optional[Rollover]:
        """Add ``reading`` to ``window`` and flush it if the unit changed.

        The reading is added before the unit check, so the reading that
        triggers a rollover is part of the flushed average and the next
        window starts empty.
        """
        window.sum += reading.value
        window.count += 1

        if current_unit_id == window.unit_id:
            return None

        average = window.sum / window.count
        window.reset(current_unit_id)
        logger.info(
            "%s ended, avg: %.2f saved.",
            granularity.value,
            average,
            extra={"unit": granularity.value, "average": f"{average:.2f}"},
        )
        return Rollover(granularity=granularity, timestamp=reading.timestamp, average=average)
