"""Unit normalization and calendar windows."""
from datetime import date

import pytest

from drinklog.models import ConsumptionEvent, DateRange, event_from_dict
from drinklog.periods import (
    custom_range,
    date_range_for_period,
    days_in_range,
    events_in_range,
    previous_period,
)
from drinklog.units import ECOCUP_VOLUME_CL, alcohol_grams, normalize


def drink(id, day, time="20:00"):
    return ConsumptionEvent(id=id, name="Lager", category="Beer", quantity=25, unit="cL",
                            alcohol_content=5.0, date=day, time=time)


def test_normalize_units():
    assert normalize(33, "cL") == 33
    assert normalize(0.5, "L") == 50
    assert normalize(3, "EcoCup") == ECOCUP_VOLUME_CL
    assert normalize(1, "EcoCup") == 25.0


def test_normalize_unknown_unit_passes_through():
    assert normalize(12, "shot") == 12


def test_alcohol_grams_standard_beer():
    # 25 cL at 5% -> 250 mL * 0.05 * 0.8 g/mL
    assert alcohol_grams(25, 5) == pytest.approx(10.0)


def test_alcohol_grams_without_abv():
    assert alcohol_grams(25, 0) == 0.0
    assert alcohol_grams(25, None) == 0.0
    assert alcohol_grams(25, -4) == 0.0


def test_week_of_a_wednesday():
    r = date_range_for_period("week", date(2024, 1, 17))
    assert r.start == date(2024, 1, 15)
    assert r.end == date(2024, 1, 21)
    assert r.start.weekday() == 0
    assert days_in_range(r) == 7


def test_week_of_a_sunday_still_starts_monday():
    r = date_range_for_period("week", date(2024, 1, 21))
    assert r.start == date(2024, 1, 15)


def test_month_and_year_ranges():
    feb = date_range_for_period("month", date(2024, 2, 10))
    assert (feb.start, feb.end) == (date(2024, 2, 1), date(2024, 2, 29))
    year = date_range_for_period("year", date(2024, 6, 1))
    assert days_in_range(year) == 366


def test_today_is_one_day():
    r = date_range_for_period("today", date(2024, 3, 5))
    assert r.start == r.end == date(2024, 3, 5)
    assert days_in_range(r) == 1


def test_unknown_period_raises():
    with pytest.raises(ValueError):
        date_range_for_period("fortnight", date(2024, 1, 1))


def test_custom_range_accepts_strings():
    r = custom_range("2024-01-01", "2024-01-10")
    assert days_in_range(r) == 10


def test_custom_range_rejects_bad_input():
    with pytest.raises(ValueError):
        custom_range("2024-01-10", "2024-01-01")
    with pytest.raises(ValueError):
        custom_range("yesterday", "2024-01-01")


def test_date_range_start_after_end():
    with pytest.raises(ValueError):
        DateRange(date(2024, 1, 2), date(2024, 1, 1))


def test_previous_periods():
    today = date_range_for_period("today", date(2024, 3, 1))
    assert previous_period(today, "today") == DateRange(date(2024, 2, 29), date(2024, 2, 29))

    week = date_range_for_period("week", date(2024, 1, 17))
    assert previous_period(week, "week") == DateRange(date(2024, 1, 8), date(2024, 1, 14))

    march = date_range_for_period("month", date(2024, 3, 15))
    assert previous_period(march, "month") == DateRange(date(2024, 2, 1), date(2024, 2, 29))

    january = date_range_for_period("month", date(2024, 1, 15))
    assert previous_period(january, "month") == DateRange(date(2023, 12, 1), date(2023, 12, 31))

    year = date_range_for_period("year", date(2024, 5, 1))
    assert previous_period(year, "year") == DateRange(date(2023, 1, 1), date(2023, 12, 31))


def test_previous_custom_period_has_same_length():
    r = custom_range("2024-01-10", "2024-01-14")
    prev = previous_period(r, "custom")
    assert prev == DateRange(date(2024, 1, 5), date(2024, 1, 9))
    assert days_in_range(prev) == days_in_range(r)


def test_events_in_range_is_inclusive_and_skips_bad_dates():
    events = [
        drink(1, "2024-01-14"),
        drink(2, "2024-01-15"),
        drink(3, "2024-01-21"),
        drink(4, "2024-01-22"),
        drink(5, "not-a-date"),
    ]
    r = date_range_for_period("week", date(2024, 1, 17))
    assert [e.id for e in events_in_range(events, r)] == [2, 3]


def test_event_from_dict_is_lenient():
    e = event_from_dict({
        "id": 7,
        "name": " Lager ",
        "category": "Beer",
        "quantity": "25",
        "unit": "cL",
        "alcohol_content": 140,
        "date": "2024-01-15",
        "time": "20:00:31",
        "location": {"latitude": "48.85", "longitude": 2.35},
    })
    assert e.name == "Lager"
    assert e.quantity == 25.0
    assert e.alcohol_content == 100.0
    assert e.hour == 20
    assert e.location.latitude == 48.85
    assert event_from_dict({"name": "x", "location": {"latitude": 95, "longitude": 0}}).location is None


def test_event_from_dict_tolerates_bad_quantity():
    e = event_from_dict({"name": "Lager", "quantity": "a pint", "alcohol_content": 5})
    assert e.quantity == 0.0
    assert event_from_dict({"name": "Lager", "quantity": [25]}).quantity == 0.0
