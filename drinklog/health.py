"""Health indicators: weekly alcohol vs. WHO guidance, risk bands, BAC advice.

Educational only. Estimates never guarantee that it is safe or legal to drive.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from drinklog import calculations
from drinklog.models import BACSnapshot, BodyProfile, ConsumptionEvent, DateRange
from drinklog.periods import days_in_range
from drinklog.units import event_alcohol_grams

# Grams of pure alcohol per week.
WHO_WEEKLY_LIMIT_G = {"male": 210.0, "female": 140.0}
# Grams of pure alcohol per day; heavy episodes are twice this.
DAILY_LIMIT_G = {"male": 40.0, "female": 30.0}


def who_weekly_limit(sex: Optional[str]) -> float:
    return WHO_WEEKLY_LIMIT_G.get(sex or "", WHO_WEEKLY_LIMIT_G["female"])


def daily_limit(sex: Optional[str]) -> float:
    return DAILY_LIMIT_G.get(sex or "", DAILY_LIMIT_G["male"])


def alcohol_by_day(events: Iterable[ConsumptionEvent]) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for e in events:
        grams = event_alcohol_grams(e)
        if grams <= 0 or e.day is None:
            continue
        out[e.date] = out.get(e.date, 0.0) + grams
    return out


def alcohol_by_week(events: Iterable[ConsumptionEvent]) -> Dict[str, float]:
    """Grams per ISO week, keyed like `2024-W07`."""
    out: Dict[str, float] = {}
    for e in events:
        grams = event_alcohol_grams(e)
        day = e.day
        if grams <= 0 or day is None:
            continue
        year, week, _ = day.isocalendar()
        key = f"{year}-W{week:02d}"
        out[key] = out.get(key, 0.0) + grams
    return out


def risk_analysis(weekly_alcohol: float, daily: Dict[str, float], days: int, sex: Optional[str]) -> dict:
    """Return risk band ('low', 'medium', 'high') with contributing factors."""
    weekly_limit = WHO_WEEKLY_LIMIT_G.get(sex or "", WHO_WEEKLY_LIMIT_G["male"])
    day_limit = daily_limit(sex)
    score = 0
    factors: List[str] = []
    recommendations: List[str] = []

    if weekly_alcohol > weekly_limit * 1.5:
        score += 40
        factors.append("Weekly consumption well above guidance")
        recommendations.append("Cut your weekly consumption significantly")
    elif weekly_alcohol > weekly_limit:
        score += 20
        factors.append("Weekly consumption above guidance")
        recommendations.append("Try to stay within the weekly guidance")

    heavy = [g for g in daily.values() if g > day_limit]
    if heavy:
        avg_excess = sum(heavy) / len(heavy)
        if avg_excess > day_limit * 2:
            score += 30
            factors.append("Heavy drinking episodes")
            recommendations.append("Avoid heavy drinking episodes")
        else:
            score += 15
            factors.append("Occasional days above the daily limit")
            recommendations.append("Keep amounts moderate on nights out")

    frequency = len(daily) / max(1, days)
    if frequency > 0.8:
        score += 20
        factors.append("Drinking almost every day")
        recommendations.append("Plan alcohol-free days")
    elif frequency > 0.5:
        score += 10
        factors.append("Frequent drinking")
        recommendations.append("Alternate with alcohol-free days")

    if score >= 50:
        level = "high"
    elif score >= 25:
        level = "medium"
    else:
        level = "low"
        recommendations.append("Keep drinking in moderation")

    return {"level": level, "score": score, "factors": factors, "recommendations": recommendations}


def exceedance_days(daily: Dict[str, float], sex: Optional[str]) -> dict:
    limit = daily_limit(sex)
    heavy_limit = limit * 2
    moderate = 0
    heavy = 0
    max_daily = 0.0
    max_daily_date = None
    for day, grams in daily.items():
        if grams > heavy_limit:
            heavy += 1
        elif grams > limit:
            moderate += 1
        if grams > max_daily:
            max_daily = grams
            max_daily_date = day
    return {
        "moderate_exceedance": moderate,
        "heavy_exceedance": heavy,
        "total_exceedance": moderate + heavy,
        "max_daily": round(max_daily, 1),
        "max_daily_date": max_daily_date,
        "daily_limit": limit,
    }


def bac_advice(snapshot: Optional[BACSnapshot]) -> dict:
    """Conservative messaging from an estimated BAC snapshot."""
    if snapshot is None:
        return {
            "status": "unavailable",
            "title": "Profile incomplete",
            "message": "Set your weight and sex to estimate BAC.",
        }
    if snapshot.is_above_legal_limit:
        return {
            "status": "do_not_drive",
            "title": "Above legal limit",
            "message": f"Estimated BAC is above {snapshot.legal_limit:.0f} mg/L. Do not drive.",
            "action": f"Wait about {snapshot.time_to_sobriety:.1f}h for full sobriety.",
        }
    if snapshot.current_bac > 0:
        return {
            "status": "caution",
            "title": "Alcohol still present",
            "message": "Estimated BAC is below the legal limit but not zero.",
            "action": "Safest choice is still not to drive.",
        }
    return {
        "status": "ok",
        "title": "No alcohol in the last 24h",
        "message": "Estimated BAC is 0 mg/L right now.",
    }


def health_stats(
    events: Iterable[ConsumptionEvent],
    date_range: DateRange,
    profile: Optional[BodyProfile],
    at: Optional[datetime] = None,
    legal_limit_mg_l: float = calculations.LEGAL_LIMIT_MG_L,
    history: Optional[Iterable[ConsumptionEvent]] = None,
) -> dict:
    """
    Health indicators for the drinks in `date_range`.

    The BAC estimate looks back 24h from `at` over `history` (all known drinks)
    when given, so drinks just before the window still count.
    """
    events = list(events)
    sex = profile.sex if profile else None
    days = days_in_range(date_range)

    daily = alcohol_by_day(events)
    total = sum(event_alcohol_grams(e) for e in events)
    # Same no-extrapolation rule as the drink averages.
    weekly = total / days * 7 if days >= 7 else total
    limit = who_weekly_limit(sex)

    snapshot = calculations.estimate_bac(
        events if history is None else history, profile, at=at, legal_limit_mg_l=legal_limit_mg_l)

    return {
        "total_alcohol_grams": round(total, 1),
        "weekly_alcohol": round(weekly, 1),
        "who_recommendation": limit,
        "who_comparison": round(weekly / limit * 100) if limit else None,
        "bac_estimation": snapshot.to_dict() if snapshot else {"available": False},
        "bac_advice": bac_advice(snapshot),
        "risk_analysis": risk_analysis(weekly, daily, days, sex),
        "exceedance_days": exceedance_days(daily, sex),
        "daily_alcohol": {k: round(v, 1) for k, v in daily.items()},
        "weekly_by_week": {k: round(v, 1) for k, v in alcohol_by_week(events).items()},
        "user_profile": {
            "weight_kg": profile.weight_kg if profile else None,
            "sex": sex,
            "configured": profile is not None,
        },
    }
