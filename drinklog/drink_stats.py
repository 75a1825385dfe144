"""Per-drink (by name) statistics and the top-drinks list."""

import math
from typing import Dict, Iterable, List, Optional

from drinklog.models import ConsumptionEvent, parse_day
from drinklog.units import alcohol_grams, event_volume

DEFAULT_TOP_LIMIT = 20

# Interval std-dev (days) at which regularity bottoms out at 0.
MAX_INTERVAL_STDDEV = 30.0


def regularity(dates: List[str]) -> int:
    """0-100 score; 100 means drunk at perfectly even day intervals."""
    days = sorted(d for d in (parse_day(x) for x in dates) if d is not None)
    if len(days) < 2:
        return 0
    intervals = [(b - a).days + 1 for a, b in zip(days, days[1:])]
    mean = sum(intervals) / len(intervals)
    std = math.sqrt(sum((i - mean) ** 2 for i in intervals) / len(intervals))
    return round(max(0.0, 100.0 - std / MAX_INTERVAL_STDDEV * 100.0))


def _preferred_hour(events: List[ConsumptionEvent]) -> Optional[int]:
    counts: Dict[int, int] = {}
    for e in events:
        if e.hour is not None:
            counts[e.hour] = counts.get(e.hour, 0) + 1
    if not counts:
        return None
    return max(counts, key=counts.get)


def drink_stats(events: Iterable[ConsumptionEvent], limit: int = DEFAULT_TOP_LIMIT) -> dict:
    groups: Dict[str, List[ConsumptionEvent]] = {}
    for e in events:
        groups.setdefault(e.name, []).append(e)

    rows = []
    for name, drinks in groups.items():
        volumes = [event_volume(e) for e in drinks]
        total_volume = sum(volumes)
        total_alcohol = sum(alcohol_grams(v, e.alcohol_content) for v, e in zip(volumes, drinks))
        dates = sorted(e.date for e in drinks if e.day is not None)
        rows.append({
            "name": name,
            "category": drinks[0].category,
            "count": len(drinks),
            "alcohol_content": drinks[0].alcohol_content,
            "total_volume": round(total_volume, 1),
            "avg_volume": round(total_volume / len(drinks), 1),
            "total_alcohol": round(total_alcohol, 1),
            "first_consumed": dates[0] if dates else None,
            "last_consumed": dates[-1] if dates else None,
            "preferred_hour": _preferred_hour(drinks),
            "regularity": regularity(dates),
            "units": sorted({e.unit for e in drinks}),
        })

    rows.sort(key=lambda r: r["count"], reverse=True)
    top = rows[:limit]
    return {
        "drinks": top,
        "total_unique_drinks": len(rows),
        "top_drink": top[0] if top else None,
    }
