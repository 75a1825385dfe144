"""Where drinks were logged: coordinate clustering and distance/mobility stats.

Drinks are grouped by rounding coordinates to LOCATION_PRECISION decimals
(4 decimals ~ 11 m), which is deterministic and O(n).
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from drinklog.models import ConsumptionEvent
from drinklog.units import event_alcohol_grams, event_volume

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

LOCATION_PRECISION = 4

HIGH_MOBILITY_SHARE = 30.0
MEDIUM_MOBILITY_SHARE = 60.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in km between two points given in decimal degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def _mode(distribution: Dict) -> Optional[int]:
    # max() keeps the first key on ties, i.e. the first one encountered.
    if not distribution:
        return None
    return max(distribution, key=distribution.get)


@dataclass
class LocationCluster:
    key: str
    drinks: List[ConsumptionEvent] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.drinks)

    @property
    def latitude(self) -> float:
        return sum(e.location.latitude for e in self.drinks) / self.count

    @property
    def longitude(self) -> float:
        return sum(e.location.longitude for e in self.drinks) / self.count

    @property
    def address(self) -> Optional[str]:
        for e in self.drinks:
            if e.location.address:
                return e.location.address
        return None

    def category_distribution(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for e in self.drinks:
            out[e.category] = out.get(e.category, 0) + 1
        return out

    def hour_distribution(self) -> Dict[int, int]:
        out: Dict[int, int] = {}
        for e in self.drinks:
            if e.hour is None:
                continue
            out[e.hour] = out.get(e.hour, 0) + 1
        return out

    def day_distribution(self) -> Dict[int, int]:
        """Drinks per weekday, Monday = 0."""
        out: Dict[int, int] = {}
        for e in self.drinks:
            day = e.day
            if day is None:
                continue
            out[day.weekday()] = out.get(day.weekday(), 0) + 1
        return out

    def to_dict(self) -> dict:
        total_volume = sum(event_volume(e) for e in self.drinks)
        total_alcohol = sum(event_alcohol_grams(e) for e in self.drinks)
        hours = self.hour_distribution()
        days = self.day_distribution()
        dates = sorted({e.date for e in self.drinks if e.day is not None})
        return {
            "id": self.key,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "address": self.address,
            "count": self.count,
            "categories": self.category_distribution(),
            "unique_dates": len(dates),
            "first_date": dates[0] if dates else None,
            "last_date": dates[-1] if dates else None,
            "total_volume": round(total_volume, 1),
            "total_alcohol": round(total_alcohol, 1),
            "avg_volume": round(total_volume / self.count, 1),
            "avg_alcohol": round(total_alcohol / self.count, 1),
            "time_distribution": hours,
            "day_distribution": days,
            "preferred_hour": _mode(hours),
            "preferred_day": _mode(days),
            "drink_ids": [e.id for e in self.drinks],
        }


def located(events: Iterable[ConsumptionEvent]) -> List[ConsumptionEvent]:
    return [e for e in events if e.location is not None]


def cluster_events(
    events: Iterable[ConsumptionEvent],
    precision: int = LOCATION_PRECISION,
) -> List[LocationCluster]:
    """Group geo-tagged drinks by rounded coordinates, busiest place first."""
    groups: Dict[str, LocationCluster] = {}
    for e in located(events):
        # + 0.0 folds -0.0 into 0.0 so both sides of the equator/meridian share a key.
        lat = round(e.location.latitude, precision) + 0.0
        lng = round(e.location.longitude, precision) + 0.0
        key = f"{lat:.{precision}f},{lng:.{precision}f}"
        cluster = groups.get(key)
        if cluster is None:
            cluster = groups[key] = LocationCluster(key=key)
        cluster.drinks.append(e)
    # sorted() is stable: equal counts keep first-seen order.
    return sorted(groups.values(), key=lambda c: c.count, reverse=True)


def center_point(clusters: List[LocationCluster]) -> Tuple[float, float]:
    lat = sum(c.latitude for c in clusters) / len(clusters)
    lng = sum(c.longitude for c in clusters) / len(clusters)
    return lat, lng


def pairwise_distances(clusters: List[LocationCluster]) -> dict:
    """Average/max/min distance (km) between every pair of clusters."""
    distances = []
    for i, a in enumerate(clusters):
        for b in clusters[i + 1:]:
            distances.append(haversine_km(a.latitude, a.longitude, b.latitude, b.longitude))
    if not distances:
        return {"average": 0.0, "max": 0.0, "min": 0.0}
    return {
        "average": round(sum(distances) / len(distances), 2),
        "max": round(max(distances), 2),
        "min": round(min(distances), 2),
    }


def distance_stats(clusters: List[LocationCluster]) -> dict:
    """Spread of clusters around their common center point."""
    if len(clusters) < 2:
        return {
            "average_distance": 0.0,
            "max_distance": 0.0,
            "min_distance": 0.0,
            "total_distance": 0.0,
            "distance_variability": 0.0,
            "center_point": None,
        }
    lat, lng = center_point(clusters)
    distances = [haversine_km(lat, lng, c.latitude, c.longitude) for c in clusters]
    total = sum(distances)
    avg = total / len(distances)
    variance = sum((d - avg) ** 2 for d in distances) / len(distances)
    return {
        "average_distance": round(avg, 2),
        "max_distance": round(max(distances), 2),
        "min_distance": round(min(distances), 2),
        "total_distance": round(total, 2),
        "distance_variability": round(math.sqrt(variance), 2),
        "center_point": {"latitude": lat, "longitude": lng},
    }


def mobility(top_share_percent: float) -> str:
    if top_share_percent < HIGH_MOBILITY_SHARE:
        return "high"
    if top_share_percent < MEDIUM_MOBILITY_SHARE:
        return "medium"
    return "low"


def geographic_patterns(clusters: List[LocationCluster], located_count: int) -> dict:
    patterns = {
        "mobility": "low",
        "favorite_location": None,
        "location_diversity": "low",
        "average_distance": 0.0,
        "max_distance": 0.0,
        "min_distance": 0.0,
        "exploration_score": 0,
    }
    if not clusters or not located_count:
        return patterns

    top = clusters[0]
    patterns["favorite_location"] = {"id": top.key, "address": top.address, "count": top.count}
    if len(clusters) >= 10:
        patterns["location_diversity"] = "high"
    elif len(clusters) >= 5:
        patterns["location_diversity"] = "medium"

    patterns["mobility"] = mobility(top.count / located_count * 100.0)

    pairs = pairwise_distances(clusters)
    patterns["average_distance"] = pairs["average"]
    patterns["max_distance"] = pairs["max"]
    patterns["min_distance"] = pairs["min"]
    patterns["exploration_score"] = round(len(clusters) / located_count * 100)
    return patterns


def location_stats(events: Iterable[ConsumptionEvent], precision: int = LOCATION_PRECISION) -> dict:
    events = list(events)
    with_location = located(events)
    if not with_location:
        return {
            "has_location_data": False,
            "message": "No location data for this period.",
            "stats": None,
        }

    logger.debug("Clustering %d located drinks", len(with_location))
    clusters = cluster_events(with_location, precision)
    n = len(with_location)
    locations = [c.to_dict() for c in clusters]
    return {
        "has_location_data": True,
        "message": f"{n} located drink{'s' if n > 1 else ''} found.",
        "stats": {
            "total_locations": len(clusters),
            "locations": locations,
            "top_locations": locations[:10],
            "geo_patterns": geographic_patterns(clusters, n),
            "distance_stats": distance_stats(clusters),
            "coverage": {
                "with_location": n,
                "without_location": len(events) - n,
                "percentage": round(n / len(events) * 100),
            },
        },
    }
