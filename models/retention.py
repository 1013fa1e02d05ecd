"""Retention thresholds applied by the pruner."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from models.records import LogName

SECONDS_IN_DAY = 24 * 3600
SECONDS_IN_MONTH = 30 * SECONDS_IN_DAY
SECONDS_IN_YEAR = 365 * SECONDS_IN_DAY


class RetentionPolicy(BaseModel):
    """Maximum age a record in ``log_name`` may reach before it is pruned."""

    model_config = ConfigDict(frozen=True)

    log_name: LogName
    max_age_seconds: int = Field(..., gt=0)


DEFAULT_POLICIES: tuple[RetentionPolicy, ...] = (
    RetentionPolicy(log_name=LogName.raw, max_age_seconds=SECONDS_IN_DAY),
    RetentionPolicy(log_name=LogName.hour, max_age_seconds=SECONDS_IN_MONTH),
    RetentionPolicy(log_name=LogName.day, max_age_seconds=SECONDS_IN_YEAR),
)
