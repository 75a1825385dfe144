"""
Drink log: consumption statistics, sessions, location clusters, and Widmark-based BAC estimates.
Use from project root: python -m drinklog.main
"""

from drinklog.units import alcohol_grams, normalize
from drinklog.models import (
    BACSnapshot,
    BodyProfile,
    Category,
    ConsumptionEvent,
    DateRange,
    Location,
    event_from_dict,
)
from drinklog.sessions import Session, segment_sessions
from drinklog.periods import (
    custom_range,
    date_range_for_period,
    days_in_range,
    events_in_range,
    previous_period,
)
from drinklog.general import GeneralStats, general_stats, percentage_change
from drinklog.comparison import compare_periods
from drinklog.calculations import (
    bac_at_time,
    bac_curve,
    estimate_bac,
    profile_from_settings,
    time_to_target,
)
from drinklog.location import cluster_events, haversine_km, location_stats
from drinklog.cache import StatsCache

__all__ = [
    "ConsumptionEvent",
    "Location",
    "Category",
    "DateRange",
    "BodyProfile",
    "BACSnapshot",
    "Session",
    "GeneralStats",
    "StatsCache",
    "normalize",
    "alcohol_grams",
    "event_from_dict",
    "segment_sessions",
    "date_range_for_period",
    "custom_range",
    "days_in_range",
    "previous_period",
    "events_in_range",
    "general_stats",
    "percentage_change",
    "compare_periods",
    "bac_at_time",
    "bac_curve",
    "estimate_bac",
    "profile_from_settings",
    "time_to_target",
    "haversine_km",
    "cluster_events",
    "location_stats",
]
