"""Retention tags for report output.

The tag lives at wizard.data.retention and tells the cleanup job
(sirius.services.report_cleanup) how long stored report rows are kept.
"""

from __future__ import annotations

import enum
from datetime import datetime, timedelta, timezone


class RetentionPeriod(str, enum.Enum):
    ONE_DAY = "1day"
    SEVEN_DAYS = "7days"
    THIRTY_DAYS = "30days"
    ONE_YEAR = "1year"
    ALWAYS = "always"


DEFAULT_RETENTION = RetentionPeriod.THIRTY_DAYS

_RETENTION_DAYS: dict[RetentionPeriod, int | None] = {
    RetentionPeriod.ONE_DAY: 1,
    RetentionPeriod.SEVEN_DAYS: 7,
    RetentionPeriod.THIRTY_DAYS: 30,
    RetentionPeriod.ONE_YEAR: 365,
    RetentionPeriod.ALWAYS: None,
}


def parse_retention(value) -> RetentionPeriod | None:
    """Coerce a stored tag to a RetentionPeriod.

    A missing tag means the default; an unrecognised one gives None, and
    rows under an unrecognised tag are never deleted.
    """
    if value is None:
        return DEFAULT_RETENTION
    try:
        return RetentionPeriod(value)
    except ValueError:
        return None


def retention_days(period: RetentionPeriod) -> int | None:
    """Number of days data is kept, or None for `always`."""
    return _RETENTION_DAYS[period]


def cutoff_for(period: RetentionPeriod, now: datetime | None = None) -> datetime | None:
    """Rows created before the returned instant are expired."""
    days = retention_days(period)
    if days is None:
        return None
    return (now or datetime.now(timezone.utc)) - timedelta(days=days)
