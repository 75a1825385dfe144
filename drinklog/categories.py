"""Per-category breakdown of a drink set, and category trends between periods."""

from typing import Dict, Iterable, List

from drinklog.models import ConsumptionEvent
from drinklog.units import alcohol_grams, event_volume

BALANCED_MAX_SHARE = 60
CONCENTRATED_MIN_SHARE = 80


def _favorite(counts: Dict[str, int]) -> str:
    return max(counts, key=counts.get)


def category_stats(events: Iterable[ConsumptionEvent]) -> dict:
    events = list(events)
    groups: Dict[str, List[ConsumptionEvent]] = {}
    for e in events:
        groups.setdefault(e.category, []).append(e)

    rows = []
    for name, drinks in groups.items():
        volume = 0.0
        alcohol = 0.0
        abvs = []
        names: Dict[str, int] = {}
        addresses = set()
        for e in drinks:
            v = event_volume(e)
            volume += v
            if e.alcohol_content:
                abvs.append(e.alcohol_content)
                alcohol += alcohol_grams(v, e.alcohol_content)
            names[e.name] = names.get(e.name, 0) + 1
            if e.location and e.location.address:
                addresses.add(e.location.address)
        rows.append({
            "name": name,
            "count": len(drinks),
            "volume": round(volume, 1),
            "avg_volume": round(volume / len(drinks), 1),
            "avg_alcohol_content": round(sum(abvs) / len(abvs), 1) if abvs else 0.0,
            "total_alcohol": round(alcohol, 1),
            "favorite_drink": _favorite(names),
            "unique_drinks": len(names),
            "locations_count": len(addresses),
            "percentage": round(len(drinks) / len(events) * 100),
        })

    rows.sort(key=lambda r: r["count"], reverse=True)
    return {
        "categories": {r["name"]: r for r in rows},
        "sorted_categories": rows,
        "total_categories": len(rows),
        "dominant_category": rows[0]["name"] if rows else None,
        "trends": category_trends(rows),
    }


def category_trends(rows: List[dict]) -> dict:
    """Headline facts from rows sorted by count (desc)."""
    trends = {
        "most_popular": None,
        "most_alcoholic": None,
        "most_voluminous": None,
        "most_diverse": None,
        "balanced": False,
        "concentrated": False,
    }
    if not rows:
        return trends
    trends["most_popular"] = rows[0]["name"]
    trends["most_alcoholic"] = max(rows, key=lambda r: r["avg_alcohol_content"])["name"]
    trends["most_voluminous"] = max(rows, key=lambda r: r["volume"])["name"]
    trends["most_diverse"] = max(rows, key=lambda r: r["unique_drinks"])["name"]
    trends["balanced"] = rows[0]["percentage"] <= BALANCED_MAX_SHARE
    trends["concentrated"] = rows[0]["percentage"] >= CONCENTRATED_MIN_SHARE
    return trends


def compare_category_periods(current: Dict[str, dict], previous: Dict[str, dict]) -> Dict[str, dict]:
    """Status/change per category given two `category_stats()["categories"]` maps."""
    out: Dict[str, dict] = {}
    for name, cur in current.items():
        prev = previous.get(name)
        if prev is None:
            out[name] = {"status": "new", "change": 100}
            continue
        if prev["count"] == 0:
            change = 100 if cur["count"] > 0 else 0
        else:
            change = round((cur["count"] - prev["count"]) / prev["count"] * 100)
        status = "increased" if change > 0 else "decreased" if change < 0 else "stable"
        out[name] = {"status": status, "change": change}
    for name in previous:
        if name not in current:
            out[name] = {"status": "disappeared", "change": -100}
    return out
