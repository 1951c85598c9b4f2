"""
Time helpers.

Links and click events store timestamps as integer epoch milliseconds (UTC).
"""

import time
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple

MS_PER_DAY = 24 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def ms_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def ms_to_iso(value: Optional[int]) -> Optional[str]:
    if value is None:
        return None
    return ms_to_datetime(value).isoformat().replace("+00:00", "Z")


def day_start_ms(day: date) -> int:
    """First millisecond of ``day`` in UTC."""
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return int(start.timestamp() * 1000)


def day_end_ms(day: date) -> int:
    """Last millisecond of ``day`` in UTC."""
    return day_start_ms(day) + MS_PER_DAY - 1


def current_month_range(reference_ms: Optional[int] = None) -> Tuple[date, date]:
    """First and last calendar day of the UTC month containing ``reference_ms``."""
    reference = ms_to_datetime(reference_ms if reference_ms is not None else now_ms())
    first = date(reference.year, reference.month, 1)
    if reference.month == 12:
        next_first = date(reference.year + 1, 1, 1)
    else:
        next_first = date(reference.year, reference.month + 1, 1)
    return first, next_first - timedelta(days=1)
