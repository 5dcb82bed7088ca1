"""
Week fields (event date -> month-relative week)
===============================================

Weeks here are *month-relative*, not ISO weeks:
- week 1 always starts on the 1st of the month,
- week N covers days 7(N-1)+1 .. 7N,
- the last week is clipped to the month end (day 29-31 form a short week 5).

Dates arrive from the export as text, datetimes or dates. Anything pandas
cannot parse is treated as "no date" instead of an error.
"""

from __future__ import annotations
import calendar
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pandas as pd

from .models import WeekFields


def parse_date(value: Any) -> Optional[date]:
    """Convert a cell value to a calendar date, or None if missing/invalid."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        ts = pd.to_datetime(text, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts.date()


def format_date(value: Any) -> Any:
    """Return `YYYY-MM-DD` for parseable dates, the value unchanged otherwise."""
    d = parse_date(value)
    return d.isoformat() if d is not None else value


def derive_week_fields(value: Any) -> WeekFields:
    """Compute week number, week start/end and y/m/d for an event date."""
    d = parse_date(value)
    if d is None:
        return WeekFields()

    last_day = calendar.monthrange(d.year, d.month)[1]
    week_number = (d.day - 1) // 7 + 1
    week_start = date(d.year, d.month, 1) + timedelta(days=(week_number - 1) * 7)
    week_end = min(week_start + timedelta(days=6), date(d.year, d.month, last_day))

    return WeekFields(
        week_number=week_number,
        week_start=week_start,
        week_end=week_end,
        year=d.year,
        month=d.month,
        day=d.day,
    )
