"""When drinks happen: hour-of-day and weekday distributions plus session summaries."""

from typing import Dict, Iterable

from drinklog.models import ConsumptionEvent, DateRange
from drinklog.periods import days_in_range
from drinklog.sessions import DEFAULT_GAP_HOURS, segment_sessions, session_stats, timed_events


def _peak(distribution: Dict[int, int]) -> int:
    return max(distribution, key=distribution.get)


def temporal_stats(
    events: Iterable[ConsumptionEvent],
    date_range: DateRange,
    gap_hours: float = DEFAULT_GAP_HOURS,
) -> dict:
    timed = timed_events(events)
    sessions = segment_sessions(timed, gap_hours)

    hourly = {h: 0 for h in range(24)}
    # Monday = 0 ... Sunday = 6
    daily = {d: 0 for d in range(7)}
    for e in timed:
        hourly[e.timestamp.hour] += 1
        daily[e.timestamp.weekday()] += 1

    stats = session_stats(sessions)
    return {
        "hourly_distribution": hourly,
        "daily_distribution": daily,
        "peak_hour": _peak(hourly) if timed else 0,
        "peak_day": _peak(daily) if timed else 0,
        "avg_session_duration": stats["avg_duration"],
        "avg_time_between_sessions": stats["avg_time_between"],
        "avg_drinks_per_session": stats["avg_drinks_per_session"],
        "total_sessions": len(sessions),
        "total_days_analyzed": days_in_range(date_range),
        "first_drink": timed[0].date if timed else None,
        "last_drink": timed[-1].date if timed else None,
        "sessions": [s.to_dict() for s in sessions[:5]],
    }
