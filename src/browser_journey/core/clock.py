"""Epoch-millisecond clock helpers."""

import time
from datetime import datetime, timedelta


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_day(value: str, *, end_of_day: bool = False) -> int:
    """Convert a local ``YYYY-MM-DD`` date to epoch ms.

    With ``end_of_day`` the result is 23:59:59.999 of that day, so inclusive
    filters cover the whole day.
    """
    day = datetime.strptime(value, "%Y-%m-%d")
    if end_of_day:
        day += timedelta(days=1) - timedelta(milliseconds=1)
    return int(day.timestamp() * 1000)
