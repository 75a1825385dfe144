"""Calendar windows (day/week/month/year/custom) and their preceding windows.

All ranges are inclusive on both ends. Weeks run Monday to Sunday.
"""

import calendar
import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional, Union

from drinklog.models import ConsumptionEvent, DateRange, parse_day

logger = logging.getLogger(__name__)

PERIOD_TODAY = "today"
PERIOD_WEEK = "week"
PERIOD_MONTH = "month"
PERIOD_YEAR = "year"
PERIOD_CUSTOM = "custom"

CALENDAR_PERIODS = (PERIOD_TODAY, PERIOD_WEEK, PERIOD_MONTH, PERIOD_YEAR)
PERIODS = CALENDAR_PERIODS + (PERIOD_CUSTOM,)

DayLike = Union[date, str]


def _month_range(year: int, month: int) -> DateRange:
    last = calendar.monthrange(year, month)[1]
    return DateRange(date(year, month, 1), date(year, month, last))


def date_range_for_period(period: str, reference: Optional[date] = None) -> DateRange:
    """Calendar-aligned window of type `period` containing `reference` (default: today)."""
    d = reference or date.today()
    if period == PERIOD_TODAY:
        return DateRange(d, d)
    if period == PERIOD_WEEK:
        monday = d - timedelta(days=d.weekday())
        return DateRange(monday, monday + timedelta(days=6))
    if period == PERIOD_MONTH:
        return _month_range(d.year, d.month)
    if period == PERIOD_YEAR:
        return DateRange(date(d.year, 1, 1), date(d.year, 12, 31))
    raise ValueError(f"Unknown period {period!r}")


def custom_range(start: DayLike, end: DayLike) -> DateRange:
    s = parse_day(start)
    e = parse_day(end)
    if s is None or e is None:
        raise ValueError("start and end must be YYYY-MM-DD dates")
    return DateRange(s, e)


def days_in_range(date_range: DateRange) -> int:
    """Number of calendar days in the range, both ends included, never below 1."""
    return max(1, (date_range.end - date_range.start).days + 1)


def previous_period(date_range: DateRange, period: str) -> DateRange:
    """The window immediately preceding `date_range` for comparison."""
    if period == PERIOD_TODAY:
        return DateRange(date_range.start - timedelta(days=1), date_range.start - timedelta(days=1))
    if period == PERIOD_WEEK:
        return DateRange(date_range.start - timedelta(days=7), date_range.end - timedelta(days=7))
    if period == PERIOD_MONTH:
        last_of_prev = date_range.start.replace(day=1) - timedelta(days=1)
        return _month_range(last_of_prev.year, last_of_prev.month)
    if period == PERIOD_YEAR:
        y = date_range.start.year - 1
        return DateRange(date(y, 1, 1), date(y, 12, 31))

    length = days_in_range(date_range)
    end = date_range.start - timedelta(days=1)
    return DateRange(end - timedelta(days=length - 1), end)


def events_in_range(events: Iterable[ConsumptionEvent], date_range: DateRange) -> List[ConsumptionEvent]:
    out = []
    for e in events:
        day = e.day
        if day is None:
            logger.warning("Skipping drink %s with unparseable date %r", e.id, e.date)
            continue
        if date_range.contains(day):
            out.append(e)
    return out
