"""General stats and period-over-period comparison."""
import logging
from datetime import date

import pytest

from drinklog.comparison import COMPARED_METRICS, compare_periods
from drinklog.general import general_stats, percentage_change
from drinklog.models import ConsumptionEvent, DateRange
from drinklog.periods import date_range_for_period, events_in_range


def drink(id, name, category, quantity, unit, abv, day, time):
    return ConsumptionEvent(id=id, name=name, category=category, quantity=quantity, unit=unit,
                            alcohol_content=abv, date=day, time=time)


WEEK = date_range_for_period("week", date(2024, 1, 17))

HISTORY = [
    drink(1, "Lager", "Beer", 25, "cL", 5.0, "2024-01-15", "20:00"),
    drink(2, "Lager", "Beer", 25, "cL", 5.0, "2024-01-15", "21:00"),
    drink(3, "Red wine", "Wine", 12, "cL", 12.5, "2024-01-17", "19:00"),
    drink(4, "Festival cup", "Beer", 3, "EcoCup", 6.0, "2024-01-20", "23:00"),
    # previous week
    drink(5, "Lager", "Beer", 25, "cL", 5.0, "2024-01-10", "20:00"),
]


@pytest.mark.parametrize(
    "current,previous,expected",
    [
        (0, 0, 0.0),
        (5, 0, 100.0),
        (15, 10, 50.0),
        (5, 10, -50.0),
        (1, 3, -66.7),
        (10, 10, 0.0),
    ],
)
def test_percentage_change(current, previous, expected):
    assert percentage_change(current, previous) == expected


def test_general_stats_for_a_week():
    events = events_in_range(HISTORY, WEEK)
    stats = general_stats(events, WEEK, period="week")
    assert stats.total_drinks == 4
    assert stats.total_volume == 87.0
    assert stats.total_alcohol == 44.0
    assert stats.total_sessions == 3
    assert stats.unique_drinks == 3
    assert stats.days == 7
    assert stats.avg_per_day == 0.6
    assert stats.avg_per_week == 4.0
    # Under 30 days: no monthly extrapolation
    assert stats.avg_per_month == 4
    assert stats.sober_days == 4
    assert stats.category_distribution == {"Beer": 3, "Wine": 1}
    assert stats.comparison is None


def test_short_range_does_not_extrapolate_week():
    day = DateRange(date(2024, 1, 15), date(2024, 1, 15))
    stats = general_stats(events_in_range(HISTORY, day), day)
    assert stats.total_drinks == 2
    assert stats.avg_per_day == 2.0
    assert stats.avg_per_week == 2
    assert stats.sober_days == 0


def test_month_average_extrapolates_from_30_days():
    r = DateRange(date(2024, 1, 1), date(2024, 1, 30))
    stats = general_stats(events_in_range(HISTORY, r), r)
    assert stats.days == 30
    assert stats.avg_per_month == round(5 / 30 * 30.44, 1)


def test_empty_range_is_zero_filled():
    stats = general_stats([], WEEK)
    assert stats.total_drinks == 0
    assert stats.total_sessions == 0
    assert stats.sober_days == 7
    assert stats.to_dict()["category_distribution"] == {}


def test_general_stats_with_history_compares_previous_week():
    stats = general_stats(events_in_range(HISTORY, WEEK), WEEK, period="week", history=HISTORY)
    c = stats.comparison
    assert set(c) == set(COMPARED_METRICS)
    assert c["total_drinks"] == 300.0
    assert c["total_alcohol"] == 340.0
    assert c["total_volume"] == 248.0
    assert c["total_sessions"] == 200.0
    assert c["unique_drinks"] == 200.0
    assert c["sober_days"] == -33.3


def test_compare_periods_from_nothing():
    changes = compare_periods(HISTORY[:4], WEEK, "week")
    assert changes["total_drinks"] == 100.0
    assert changes["sober_days"] == round((4 - 7) / 7 * 100, 1)


def test_compare_unequal_periods_warns(caplog):
    march = DateRange(date(2024, 3, 1), date(2024, 3, 31))
    with caplog.at_level(logging.WARNING, logger="drinklog.comparison"):
        changes = compare_periods(HISTORY, march, "month")
    assert "different lengths" in caplog.text
    assert changes["total_drinks"] == 0.0
