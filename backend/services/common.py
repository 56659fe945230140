"""
common.py — Small date and number helpers shared by the services.
"""

import math
from datetime import date, datetime, timezone


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def as_date(value) -> date:
    """Accept date, datetime or ISO string (store rows may carry any of them)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; 82.5 must give 83.
    return int(math.floor(value + 0.5))
