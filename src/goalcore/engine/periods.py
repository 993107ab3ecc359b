# src/goalcore/engine/periods.py
"""
Calendar arithmetic for scaling periods and reset sub-periods.

Scaling periods use calendar arithmetic (``relativedelta``), so a monthly
period that starts on Jan 31 ends on Feb 28/29 and an annual period
starting on Feb 29 ends on Feb 28 of the next year. Sub-period elapse
checks follow their own per-frequency rules (see ``sub_period_elapsed``).
"""

from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from ..models import ResetFrequency, Timeframe

_TIMEFRAME_STEP = {
    Timeframe.DAILY: relativedelta(days=1),
    Timeframe.WEEKLY: relativedelta(days=7),
    Timeframe.MONTHLY: relativedelta(months=1),
    Timeframe.ANNUALLY: relativedelta(years=1),
}

WEEK = timedelta(days=7)


def period_end(period_start: datetime, timeframe: Timeframe) -> datetime:
    """Return the instant at which a period that began at ``period_start`` is due."""
    return period_start + _TIMEFRAME_STEP[Timeframe(timeframe)]


def is_period_due(period_start: datetime, timeframe: Timeframe, now: datetime) -> bool:
    """True iff ``now`` is at or past the end of the current scaling period."""
    return now >= period_end(period_start, timeframe)


def _month_index(dt: datetime) -> int:
    return dt.year * 12 + dt.month


def sub_period_elapsed(last_reset: datetime, frequency: ResetFrequency, now: datetime) -> bool:
    """
    Decide whether at least one reset sub-period has elapsed since ``last_reset``.

    - daily: the calendar dates differ, regardless of time of day.
    - weekly: at least one full 7x24h interval has passed; not aligned to
      calendar weeks.
    - monthly: the month number (year*12 + month) advanced; day of month
      is ignored.
    - never: always False.
    """
    frequency = ResetFrequency(frequency)
    if frequency == ResetFrequency.DAILY:
        return now.date() != last_reset.date()
    if frequency == ResetFrequency.WEEKLY:
        return (now - last_reset) // WEEK >= 1
    if frequency == ResetFrequency.MONTHLY:
        return _month_index(now) - _month_index(last_reset) >= 1
    return False
