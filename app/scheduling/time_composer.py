from datetime import date, datetime
from typing import Optional

from app.core.models import ClockTime


def compose(day: date, clock_time: Optional[ClockTime]) -> datetime:
    """
    Apply the hour and minute of ``clock_time`` to ``day``.

    The date part of ``clock_time`` (when it is a datetime) is ignored.
    Seconds are dropped. A tz-aware ``day`` keeps its tzinfo as-is.
    """
    if clock_time is None:
        raise ValueError("clock_time is required; validate the draft first")

    tzinfo = day.tzinfo if isinstance(day, datetime) else None
    return datetime(
        day.year,
        day.month,
        day.day,
        clock_time.hour,
        clock_time.minute,
        tzinfo=tzinfo,
    )
