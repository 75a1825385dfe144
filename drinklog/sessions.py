"""
Drinking sessions: runs of drinks with no gap longer than the inactivity threshold.
Sessions are derived on demand and never stored.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List

from drinklog.models import ConsumptionEvent
from drinklog.units import event_alcohol_grams, event_volume

logger = logging.getLogger(__name__)

DEFAULT_GAP_HOURS = 4.0


@dataclass
class Session:
    start: datetime
    end: datetime
    drinks: List[ConsumptionEvent] = field(default_factory=list)

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600.0

    @property
    def drink_count(self) -> int:
        return len(self.drinks)

    @property
    def total_volume(self) -> float:
        return round(sum(event_volume(e) for e in self.drinks), 1)

    @property
    def total_alcohol(self) -> float:
        return round(sum(event_alcohol_grams(e) for e in self.drinks), 1)

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(timespec="minutes"),
            "end": self.end.isoformat(timespec="minutes"),
            "duration_hours": round(self.duration_hours, 2),
            "drink_count": self.drink_count,
            "total_volume": self.total_volume,
            "total_alcohol": self.total_alcohol,
            "drink_ids": [e.id for e in self.drinks],
        }


def timed_events(events: Iterable[ConsumptionEvent]) -> List[ConsumptionEvent]:
    """Events with a usable date+time, sorted oldest first. Malformed ones are logged and dropped."""
    out = []
    for e in events:
        if e.timestamp is None:
            logger.warning("Skipping drink %s with unparseable date/time %r %r", e.id, e.date, e.time)
            continue
        out.append(e)
    return sorted(out, key=lambda e: e.timestamp)


def segment_sessions(events: Iterable[ConsumptionEvent], gap_hours: float = DEFAULT_GAP_HOURS) -> List[Session]:
    """Split drinks into sessions, most recent session first."""
    gap = timedelta(hours=gap_hours)
    sessions: List[Session] = []
    current = None
    for e in timed_events(events):
        ts = e.timestamp
        if current is None or ts - current.end > gap:
            current = Session(start=ts, end=ts, drinks=[e])
            sessions.append(current)
        else:
            current.drinks.append(e)
            current.end = ts
    sessions.reverse()
    return sessions


def session_stats(sessions: List[Session]) -> dict:
    """Average/longest/shortest durations and spacing between sessions."""
    if not sessions:
        return {
            "avg_duration": 0.0,
            "avg_time_between": 0.0,
            "avg_drinks_per_session": 0.0,
            "longest_session": 0.0,
            "shortest_session": 0.0,
        }

    # Single-drink sessions have no meaningful duration.
    durations = [s.duration_hours for s in sessions if s.duration_hours > 0]
    avg_duration = sum(durations) / len(durations) if durations else 0.0

    chronological = sorted(sessions, key=lambda s: s.start)
    gaps = []
    for prev, nxt in zip(chronological, chronological[1:]):
        hours = (nxt.start - prev.end).total_seconds() / 3600.0
        if hours > 0:
            gaps.append(hours)
    avg_between = sum(gaps) / len(gaps) if gaps else 0.0

    avg_drinks = sum(s.drink_count for s in sessions) / len(sessions)

    return {
        "avg_duration": round(avg_duration, 1),
        "avg_time_between": round(avg_between, 1),
        "avg_drinks_per_session": round(avg_drinks, 1),
        "longest_session": round(max(durations), 1) if durations else 0.0,
        "shortest_session": round(min(durations), 1) if durations else 0.0,
    }
