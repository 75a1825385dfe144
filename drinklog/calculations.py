"""BAC estimation using a per-drink Widmark rise and linear elimination.

Model:
- Peak per drink: C = grams / (weight_kg * r)   [g/L]
- r = 0.68 (male), 0.55 (female)
- Each drink decays on its own: max(0, C - 0.15 * hours_since_drink)
- Current BAC is the sum of the per-drink residuals, shown in mg/L (x1000)
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional, Tuple

from drinklog.models import BACSnapshot, BodyProfile, ConsumptionEvent
from drinklog.units import event_alcohol_grams

logger = logging.getLogger(__name__)

# Distribution ratio (Widmark r)
R_MALE = 0.68
R_FEMALE = 0.55

# Elimination rate (g/L per hour)
ELIMINATION_PER_HOUR = 0.15

# Drinks older than this cannot contribute anymore.
LOOKBACK_HOURS = 24.0

# Default legal driving limit (mg/L). Callers pass their own jurisdiction's value.
LEGAL_LIMIT_MG_L = 500.0

MG_PER_G = 1000.0

SEXES = ("male", "female")


def _ratio(sex: str) -> float:
    return R_FEMALE if sex == "female" else R_MALE


def profile_from_settings(weight: Any, sex: Any) -> Optional[BodyProfile]:
    """Body profile from raw settings values, or None when either is missing/invalid."""
    try:
        weight_kg = float(weight)
    except (TypeError, ValueError):
        return None
    if weight_kg <= 0:
        return None
    sex = str(sex or "").strip().lower()
    if sex not in SEXES:
        return None
    return BodyProfile(weight_kg=weight_kg, sex=sex)


def peak_contribution(grams_alcohol: float, weight_kg: float, sex: str = "male") -> float:
    """Immediate concentration rise (g/L) from a single dose."""
    return grams_alcohol / (weight_kg * _ratio(sex))


def _hours_since(event: ConsumptionEvent, at: datetime) -> Optional[float]:
    ts = event.timestamp
    if ts is None:
        return None
    return (at - ts).total_seconds() / 3600.0


def relevant_drinks(
    events: Iterable[ConsumptionEvent],
    at: datetime,
    lookback_hours: float = LOOKBACK_HOURS,
) -> List[ConsumptionEvent]:
    """Drinks taken within `lookback_hours` before `at` (drinks after `at` are ignored)."""
    out = []
    for e in events:
        elapsed = _hours_since(e, at)
        if elapsed is None:
            logger.warning("Skipping drink %s with unparseable date/time for BAC", e.id)
            continue
        if 0 <= elapsed <= lookback_hours:
            out.append(e)
    return out


def _residuals(
    at: datetime,
    events: Iterable[ConsumptionEvent],
    profile: BodyProfile,
    lookback_hours: float,
) -> List[float]:
    """Remaining concentration (g/L) of each relevant drink at `at`."""
    out = []
    for e in relevant_drinks(events, at, lookback_hours):
        peak = peak_contribution(event_alcohol_grams(e), profile.weight_kg, profile.sex)
        out.append(max(0.0, peak - ELIMINATION_PER_HOUR * _hours_since(e, at)))
    return out


def bac_at_time(
    at: datetime,
    events: Iterable[ConsumptionEvent],
    profile: BodyProfile,
    lookback_hours: float = LOOKBACK_HOURS,
) -> float:
    """BAC (mg/L) at `at`."""
    return sum(_residuals(at, events, profile, lookback_hours)) * MG_PER_G


def time_to_target(current_mg_l: float, target_mg_l: float = 0.0) -> float:
    """Hours for a single pooled concentration to fall from current to target."""
    if current_mg_l <= target_mg_l:
        return 0.0
    return max(0.0, (current_mg_l - target_mg_l) / MG_PER_G / ELIMINATION_PER_HOUR)


def hours_until(
    at: datetime,
    events: Iterable[ConsumptionEvent],
    profile: BodyProfile,
    target_mg_l: float = 0.0,
    lookback_hours: float = LOOKBACK_HOURS,
) -> float:
    """
    Hours after `at` until summed BAC falls to `target_mg_l`.

    Every drink is eliminated independently, so the total is piecewise linear and
    steeper while several drinks are still active. Solved exactly, segment by segment.
    Equals time_to_target() when only one drink is left and is never larger.
    """
    residuals = _residuals(at, events, profile, lookback_hours)
    target = target_mg_l / MG_PER_G
    if sum(residuals) <= target:
        return 0.0

    # Hours until each drink alone reaches zero, longest first.
    zeros = sorted((c / ELIMINATION_PER_HOUR for c in residuals if c > 0), reverse=True)
    running = 0.0
    for k, z in enumerate(zeros, start=1):
        running += z
        t = (running - target / ELIMINATION_PER_HOUR) / k
        next_zero = zeros[k] if k < len(zeros) else 0.0
        if t >= next_zero:
            return max(0.0, t)
    return 0.0


def estimate_bac(
    events: Iterable[ConsumptionEvent],
    profile: Optional[BodyProfile],
    at: Optional[datetime] = None,
    legal_limit_mg_l: float = LEGAL_LIMIT_MG_L,
    lookback_hours: float = LOOKBACK_HOURS,
) -> Optional[BACSnapshot]:
    """Current BAC and time to sobriety / legal limit. None when weight or sex is unknown."""
    if profile is None:
        return None
    at = at or datetime.now()
    events = list(events)
    drinks = relevant_drinks(events, at, lookback_hours)
    if not drinks:
        return BACSnapshot(
            current_bac=0.0,
            time_to_sobriety=0.0,
            time_to_legal_limit=0.0,
            legal_limit=legal_limit_mg_l,
            relevant_drinks=[],
        )

    return BACSnapshot(
        current_bac=bac_at_time(at, drinks, profile, lookback_hours),
        time_to_sobriety=hours_until(at, drinks, profile, 0.0, lookback_hours),
        time_to_legal_limit=hours_until(at, drinks, profile, legal_limit_mg_l, lookback_hours),
        legal_limit=legal_limit_mg_l,
        relevant_drinks=drinks,
    )


def bac_curve(
    events: Iterable[ConsumptionEvent],
    profile: BodyProfile,
    start: datetime,
    end: datetime,
    step_minutes: int = 15,
    lookback_hours: float = LOOKBACK_HOURS,
) -> List[Tuple[datetime, float]]:
    """Return (time, bac_mg_l) pairs for graphing."""
    if step_minutes <= 0:
        raise ValueError("step_minutes must be > 0")
    events = list(events)
    step = timedelta(minutes=step_minutes)

    points: List[Tuple[datetime, float]] = []
    t = start
    while t <= end:
        points.append((t, round(bac_at_time(t, events, profile, lookback_hours), 2)))
        t += step
    return points
