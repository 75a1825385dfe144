"""Period-over-period comparison: current window vs. the window before it."""

import logging
from typing import Dict, Iterable

from drinklog.general import basic_stats, percentage_change
from drinklog.models import ConsumptionEvent, DateRange
from drinklog.periods import days_in_range, events_in_range, previous_period
from drinklog.sessions import DEFAULT_GAP_HOURS

logger = logging.getLogger(__name__)

COMPARED_METRICS = (
    "total_drinks",
    "total_volume",
    "total_alcohol",
    "total_sessions",
    "unique_drinks",
    "sober_days",
    "avg_per_day",
    "avg_per_week",
)


def compare_periods(
    events: Iterable[ConsumptionEvent],
    current_range: DateRange,
    period: str,
    gap_hours: float = DEFAULT_GAP_HOURS,
) -> Dict[str, float]:
    """Percentage change per metric between `current_range` and its previous period."""
    events = list(events)
    prev_range = previous_period(current_range, period)

    current_days = days_in_range(current_range)
    prev_days = days_in_range(prev_range)
    if current_days != prev_days:
        logger.warning(
            "Comparing periods of different lengths (%d vs %d days), results are approximate",
            current_days,
            prev_days,
        )

    current = basic_stats(events_in_range(events, current_range), current_range, gap_hours)
    previous = basic_stats(events_in_range(events, prev_range), prev_range, gap_hours)

    return {
        metric: percentage_change(getattr(current, metric), getattr(previous, metric))
        for metric in COMPARED_METRICS
    }
