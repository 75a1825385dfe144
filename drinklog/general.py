"""General consumption statistics over a date range: totals, averages, sober days."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from drinklog.models import ConsumptionEvent, DateRange
from drinklog.periods import PERIOD_CUSTOM, days_in_range
from drinklog.sessions import DEFAULT_GAP_HOURS, segment_sessions
from drinklog.units import alcohol_grams, event_volume

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30.44


@dataclass
class GeneralStats:
    total_drinks: int = 0
    total_volume: float = 0.0  # cL
    total_alcohol: float = 0.0  # g
    total_sessions: int = 0
    unique_drinks: int = 0
    avg_per_day: float = 0.0
    avg_per_week: float = 0.0
    avg_per_month: float = 0.0
    sober_days: int = 0
    days: int = 1
    category_distribution: Dict[str, int] = field(default_factory=dict)
    comparison: Optional[Dict[str, float]] = None

    def to_dict(self) -> dict:
        return {
            "total_drinks": self.total_drinks,
            "total_volume": self.total_volume,
            "total_alcohol": self.total_alcohol,
            "total_sessions": self.total_sessions,
            "unique_drinks": self.unique_drinks,
            "avg_per_day": self.avg_per_day,
            "avg_per_week": self.avg_per_week,
            "avg_per_month": self.avg_per_month,
            "sober_days": self.sober_days,
            "days": self.days,
            "category_distribution": dict(self.category_distribution),
            "comparison": self.comparison,
        }


def percentage_change(current: float, previous: float) -> float:
    """Percent change from `previous` to `current`; 100 when growing from zero, 0 when both are zero."""
    if not previous:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100.0, 1)


def _averages(total_drinks: int, days: int) -> tuple:
    per_day = total_drinks / days
    # Don't extrapolate a handful of days to a full week/month.
    per_week = per_day * 7 if days >= 7 else total_drinks
    per_month = per_day * DAYS_PER_MONTH if days >= 30 else total_drinks
    return per_day, per_week, per_month


def _sober_days(events: List[ConsumptionEvent], date_range: DateRange, days: int) -> int:
    drinking_days = set()
    for e in events:
        day = e.day
        if day is not None and date_range.contains(day):
            drinking_days.add(day)
    return max(0, days - len(drinking_days))


def basic_stats(
    events: Iterable[ConsumptionEvent],
    date_range: DateRange,
    gap_hours: float = DEFAULT_GAP_HOURS,
) -> GeneralStats:
    """Totals and averages only; never computes a comparison."""
    events = list(events)
    days = days_in_range(date_range)

    total_volume = 0.0
    total_alcohol = 0.0
    names = set()
    categories: Dict[str, int] = {}
    for e in events:
        volume = event_volume(e)
        total_volume += volume
        total_alcohol += alcohol_grams(volume, e.alcohol_content)
        names.add(e.name)
        categories[e.category] = categories.get(e.category, 0) + 1

    per_day, per_week, per_month = _averages(len(events), days)

    return GeneralStats(
        total_drinks=len(events),
        total_volume=round(total_volume, 1),
        total_alcohol=round(total_alcohol, 1),
        total_sessions=len(segment_sessions(events, gap_hours)),
        unique_drinks=len(names),
        avg_per_day=round(per_day, 1),
        avg_per_week=round(per_week, 1),
        avg_per_month=round(per_month, 1),
        sober_days=_sober_days(events, date_range, days),
        days=days,
        category_distribution=categories,
    )


def general_stats(
    events: Iterable[ConsumptionEvent],
    date_range: DateRange,
    period: str = PERIOD_CUSTOM,
    history: Optional[Iterable[ConsumptionEvent]] = None,
    gap_hours: float = DEFAULT_GAP_HOURS,
) -> GeneralStats:
    """
    Stats for the drinks logged in `date_range`.

    `history` is any superset of events that covers the preceding window; when
    given, the result carries a per-metric percentage comparison with it.
    """
    events = list(events)
    logger.debug("Calculating general stats for %d drinks", len(events))
    stats = basic_stats(events, date_range, gap_hours)
    if history is not None:
        from drinklog.comparison import compare_periods

        stats.comparison = compare_periods(history, date_range, period, gap_hours=gap_hours)
    return stats
