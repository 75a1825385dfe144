"""Drink log Flask API.

Run from project root:
    python app.py
"""

import asyncio
import functools
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any

from flask import Flask, jsonify, request

from drinklog import store
from drinklog.cache import StatsCache, cache_key
from drinklog.calculations import LEGAL_LIMIT_MG_L, bac_curve, estimate_bac, profile_from_settings
from drinklog.categories import category_stats, compare_category_periods
from drinklog.comparison import compare_periods
from drinklog.drink_stats import drink_stats
from drinklog.general import general_stats
from drinklog.geocoding import DEFAULT_GEOCODER_URL, enrich_event_address, reverse_geocode
from drinklog.health import bac_advice, health_stats
from drinklog.location import location_stats
from drinklog.models import BodyProfile, ConsumptionEvent, DateRange, location_from_dict, parse_timestamp
from drinklog.periods import (
    CALENDAR_PERIODS,
    PERIOD_CUSTOM,
    custom_range,
    date_range_for_period,
    events_in_range,
    parse_day,
    previous_period,
)
from drinklog.sessions import DEFAULT_GAP_HOURS, segment_sessions, session_stats
from drinklog.temporal import temporal_stats
from drinklog.units import UNITS

DEFAULT_DB_PATH = str(Path("instance") / "drinklog.db")

MIN_WEIGHT_KG = 30.0
MAX_WEIGHT_KG = 300.0
MAX_NAME_LENGTH = 80
MAX_CURVE_HOURS = 72.0

STATS_SECTIONS = ("general", "temporal", "categories", "drinks", "locations", "health")

logging.basicConfig(
    level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s=%r", name, os.environ.get(name))
        return default


def _db_path() -> str:
    return os.environ.get("APP_DB_PATH", DEFAULT_DB_PATH)


def _legal_limit() -> float:
    return _env_float("LEGAL_LIMIT_MG_L", LEGAL_LIMIT_MG_L)


def _gap_hours() -> float:
    return _env_float("SESSION_GAP_HOURS", DEFAULT_GAP_HOURS)


def _geocoder_url() -> str:
    return os.environ.get("GEOCODER_URL", DEFAULT_GEOCODER_URL)


app = Flask(__name__)
stats_cache = StatsCache(ttl_seconds=_env_float("STATS_CACHE_TTL_SECONDS", 300.0))


def _ensure_db() -> None:
    db_path = Path(_db_path())
    db_path.parent.mkdir(parents=True, exist_ok=True)
    store.init_db(str(db_path))


def _profile() -> BodyProfile | None:
    return profile_from_settings(
        store.get_setting(_db_path(), "userWeight"),
        store.get_setting(_db_path(), "userGender"),
    )


def _parse_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_at(value: str | None) -> datetime | None:
    """`at` query arg: ISO datetime, or now when absent. Raises ValueError when malformed."""
    if not value:
        return None
    at = datetime.fromisoformat(value)
    if at.tzinfo is not None:
        # Drinks are stored as naive local times.
        at = at.astimezone().replace(tzinfo=None)
    return at


def _resolve_range() -> tuple[str, DateRange]:
    """Period and date range from query args. Raises ValueError on bad input."""
    period = request.args.get("period", "week")
    if period == PERIOD_CUSTOM:
        start = request.args.get("start")
        end = request.args.get("end")
        if not start or not end:
            raise ValueError("start and end are required for a custom period")
        return period, custom_range(start, end)
    if period not in CALENDAR_PERIODS:
        raise ValueError(f"Unknown period: {period}")
    reference = None
    if request.args.get("date"):
        reference = parse_day(request.args["date"])
        if reference is None:
            raise ValueError("date must be YYYY-MM-DD")
    return period, date_range_for_period(period, reference)


def _event_fields(data: dict[str, Any], partial: bool = False) -> tuple[dict[str, Any] | None, str | None]:
    """Validate a drink payload. Returns (fields, None) or (None, error message)."""
    out: dict[str, Any] = {}

    if "name" in data or not partial:
        name = str(data.get("name") or "").strip()
        if not name:
            return None, "Name is required"
        if len(name) > MAX_NAME_LENGTH:
            return None, f"Name must be {MAX_NAME_LENGTH} characters or fewer"
        out["name"] = name

    if "category" in data or not partial:
        category = str(data.get("category") or "").strip()
        if not category:
            return None, "Category is required"
        out["category"] = category

    if "quantity" in data or not partial:
        quantity = _parse_float(data.get("quantity"))
        if quantity is None or quantity <= 0:
            return None, "Quantity must be a positive number"
        out["quantity"] = quantity

    if "unit" in data or not partial:
        unit = data.get("unit", "cL")
        if unit not in UNITS:
            return None, f"Unit must be one of {', '.join(UNITS)}"
        out["unit"] = unit

    if "alcohol_content" in data or not partial:
        abv = _parse_float(data.get("alcohol_content", 0))
        if abv is None or not 0 <= abv <= 100:
            return None, "Alcohol content must be between 0 and 100"
        out["alcohol_content"] = abv

    now = datetime.now()
    if "date" in data or not partial:
        day = str(data.get("date") or now.strftime("%Y-%m-%d"))
        if parse_day(day) is None:
            return None, "date must be YYYY-MM-DD"
        out["date"] = day
    if "time" in data or not partial:
        time = str(data.get("time") or now.strftime("%H:%M"))
        if parse_timestamp("2000-01-01", time) is None:
            return None, "time must be HH:MM"
        out["time"] = time[:5]

    if "location" in data:
        raw = data.get("location")
        location = location_from_dict(raw)
        if raw is not None and location is None:
            return None, "Location needs a valid latitude and longitude"
        out["location"] = location

    if "barcode" in data:
        out["barcode"] = str(data.get("barcode") or "").strip() or None

    return out, None


def _compute_section(section: str, events: list[ConsumptionEvent], period: str, date_range: DateRange) -> Any:
    in_range = events_in_range(events, date_range)
    if section == "general":
        return general_stats(in_range, date_range, period=period, history=events, gap_hours=_gap_hours()).to_dict()
    if section == "temporal":
        return temporal_stats(in_range, date_range, gap_hours=_gap_hours())
    if section == "categories":
        stats = category_stats(in_range)
        previous = category_stats(events_in_range(events, previous_period(date_range, period)))
        stats["comparison"] = compare_category_periods(stats["categories"], previous["categories"])
        return stats
    if section == "drinks":
        return drink_stats(in_range)
    if section == "locations":
        return location_stats(in_range)
    raise ValueError(f"Unknown section: {section}")


@app.route("/healthz")
def healthz():
    return jsonify({"ok": True})


# Settings


@app.route("/api/settings")
def api_settings():
    _ensure_db()
    profile = _profile()
    return jsonify({
        "settings": store.get_all_settings(_db_path()),
        "profile_configured": profile is not None,
        "legal_limit": _legal_limit(),
    })


@app.route("/api/settings", methods=["POST"])
def api_settings_update():
    _ensure_db()
    data = request.get_json(silent=True) or {}

    if "userWeight" in data:
        weight = _parse_float(data["userWeight"])
        if weight is None or not MIN_WEIGHT_KG <= weight <= MAX_WEIGHT_KG:
            return jsonify({"error": f"Weight must be between {MIN_WEIGHT_KG:.0f} and {MAX_WEIGHT_KG:.0f} kg"}), 400
        store.set_setting(_db_path(), key="userWeight", value=weight)
    if "userGender" in data:
        sex = str(data["userGender"] or "").strip().lower()
        if sex not in ("male", "female"):
            return jsonify({"error": "Gender must be male or female"}), 400
        store.set_setting(_db_path(), key="userGender", value=sex)

    return jsonify({"ok": True, "settings": store.get_all_settings(_db_path())})


# Categories


@app.route("/api/categories")
def api_categories():
    _ensure_db()
    return jsonify({"items": [c.to_dict() for c in store.get_categories(_db_path())]})


@app.route("/api/categories", methods=["POST"])
def api_categories_create():
    _ensure_db()
    data = request.get_json(silent=True) or {}
    name = str(data.get("name") or "").strip()
    if not name:
        return jsonify({"error": "Category name is required"}), 400
    if len(name) > MAX_NAME_LENGTH:
        return jsonify({"error": f"Category name must be {MAX_NAME_LENGTH} characters or fewer"}), 400
    category = store.add_category(_db_path(), name=name)
    if category is None:
        return jsonify({"error": "Category already exists"}), 409
    return jsonify(category.to_dict()), 201


@app.route("/api/categories/<int:category_id>/rename", methods=["POST"])
def api_categories_rename(category_id: int):
    _ensure_db()
    if store.get_category(_db_path(), category_id) is None:
        return jsonify({"error": "Category not found"}), 404
    data = request.get_json(silent=True) or {}
    ok, msg = store.rename_category(_db_path(), category_id=category_id, new_name=str(data.get("name") or ""))
    if not ok:
        return jsonify({"error": msg}), 400
    stats_cache.invalidate()
    return jsonify({"ok": True, "category": store.get_category(_db_path(), category_id).to_dict()})


@app.route("/api/categories/<int:category_id>", methods=["DELETE"])
def api_categories_delete(category_id: int):
    _ensure_db()
    if store.get_category(_db_path(), category_id) is None:
        return jsonify({"error": "Category not found"}), 404
    ok, msg = store.delete_category(_db_path(), category_id=category_id)
    if not ok:
        return jsonify({"error": msg}), 409
    return jsonify({"ok": True})


# Drinks


@app.route("/api/drinks")
def api_drinks():
    _ensure_db()
    db_path = _db_path()
    if request.args.get("start") or request.args.get("end"):
        try:
            date_range = custom_range(request.args.get("start"), request.args.get("end"))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        events = store.get_events_in_range(db_path, start=date_range.start, end=date_range.end)
    elif request.args.get("category"):
        events = store.get_events_by_category(db_path, category=request.args["category"])
    elif request.args.get("name"):
        events = store.get_events_by_name(db_path, name=request.args["name"])
    else:
        events = store.get_all_events(db_path)
    return jsonify({"items": [e.to_dict() for e in events]})


@app.route("/api/drinks", methods=["POST"])
def api_drinks_create():
    _ensure_db()
    data = request.get_json(silent=True) or {}
    fields, error = _event_fields(data)
    if error:
        return jsonify({"error": error}), 400

    create_category = bool(data.get("create_category"))
    event = ConsumptionEvent(id=None, **fields)
    saved = store.add_event(_db_path(), event=event, create_category=create_category)
    if saved is None:
        return jsonify({"error": f"Unknown category: {event.category}"}), 400
    stats_cache.invalidate()
    logger.info("Logged drink %s (%s)", saved.id, saved.name)
    return jsonify(saved.to_dict()), 201


@app.route("/api/drinks/<int:event_id>")
def api_drinks_get(event_id: int):
    _ensure_db()
    event = store.get_event(_db_path(), event_id)
    if event is None:
        return jsonify({"error": "Drink not found"}), 404
    return jsonify(event.to_dict())


@app.route("/api/drinks/<int:event_id>", methods=["PATCH"])
def api_drinks_update(event_id: int):
    _ensure_db()
    if store.get_event(_db_path(), event_id) is None:
        return jsonify({"error": "Drink not found"}), 404
    data = request.get_json(silent=True) or {}
    fields, error = _event_fields(data, partial=True)
    if error:
        return jsonify({"error": error}), 400
    if "category" in fields and store.get_category_by_name(_db_path(), fields["category"]) is None:
        return jsonify({"error": f"Unknown category: {fields['category']}"}), 400

    updated = store.update_event(_db_path(), event_id=event_id, updates=fields)
    stats_cache.invalidate()
    return jsonify(updated.to_dict())


@app.route("/api/drinks/<int:event_id>", methods=["DELETE"])
def api_drinks_delete(event_id: int):
    _ensure_db()
    if not store.delete_event(_db_path(), event_id=event_id):
        return jsonify({"error": "Drink not found"}), 404
    stats_cache.invalidate()
    return jsonify({"ok": True})


@app.route("/api/drinks/<int:event_id>/enrich-address", methods=["POST"])
def api_drinks_enrich_address(event_id: int):
    _ensure_db()
    event = store.get_event(_db_path(), event_id)
    if event is None:
        return jsonify({"error": "Drink not found"}), 404
    if event.location is None:
        return jsonify({"error": "Drink has no location"}), 400

    geocoder = functools.partial(reverse_geocode, base_url=_geocoder_url())
    address = asyncio.run(enrich_event_address(_db_path(), event_id, geocoder=geocoder))
    if address is not None:
        stats_cache.invalidate()
    return jsonify({"ok": address is not None, "address": address})


# Stats


@app.route("/api/stats")
def api_stats():
    _ensure_db()
    try:
        period, date_range = _resolve_range()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    section = request.args.get("section", "all")
    sections = STATS_SECTIONS if section == "all" else (section,)
    if any(s not in STATS_SECTIONS for s in sections):
        return jsonify({"error": f"section must be one of all, {', '.join(STATS_SECTIONS)}"}), 400

    events = store.get_all_events(_db_path())
    out: dict[str, Any] = {"period": period, "range": date_range.to_dict()}
    for name in sections:
        if name == "health":
            # Depends on the current time through the BAC estimate; never cached.
            out[name] = health_stats(
                events_in_range(events, date_range),
                date_range,
                _profile(),
                legal_limit_mg_l=_legal_limit(),
                history=events,
            )
            continue
        key = cache_key(name, period, date_range, len(events))
        out[name] = stats_cache.get_or_compute(
            key, functools.partial(_compute_section, name, events, period, date_range)
        )
    return jsonify(out)


@app.route("/api/stats/compare")
def api_stats_compare():
    _ensure_db()
    try:
        period, date_range = _resolve_range()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    events = store.get_all_events(_db_path())
    return jsonify({
        "period": period,
        "current": date_range.to_dict(),
        "previous": previous_period(date_range, period).to_dict(),
        "changes": compare_periods(events, date_range, period, gap_hours=_gap_hours()),
    })


@app.route("/api/sessions")
def api_sessions():
    _ensure_db()
    try:
        period, date_range = _resolve_range()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    events = events_in_range(store.get_all_events(_db_path()), date_range)
    sessions = segment_sessions(events, _gap_hours())
    return jsonify({
        "period": period,
        "range": date_range.to_dict(),
        "items": [s.to_dict() for s in sessions],
        "stats": session_stats(sessions),
    })


# BAC


@app.route("/api/bac")
def api_bac():
    _ensure_db()
    try:
        at = _parse_at(request.args.get("at"))
    except ValueError:
        return jsonify({"error": "at must be an ISO datetime"}), 400

    snapshot = estimate_bac(store.get_all_events(_db_path()), _profile(), at=at, legal_limit_mg_l=_legal_limit())
    payload = snapshot.to_dict() if snapshot else {"available": False}
    payload["advice"] = bac_advice(snapshot)
    return jsonify(payload)


@app.route("/api/bac/curve")
def api_bac_curve():
    _ensure_db()
    profile = _profile()
    if profile is None:
        return jsonify({"error": "Set weight and sex first"}), 400
    try:
        start = _parse_at(request.args.get("start"))
        end = _parse_at(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO datetimes"}), 400
    if start is None or end is None:
        return jsonify({"error": "start and end are required"}), 400
    if end < start or (end - start).total_seconds() > MAX_CURVE_HOURS * 3600:
        return jsonify({"error": f"end must be after start and within {MAX_CURVE_HOURS:.0f}h"}), 400

    step = request.args.get("step", type=int) or 15
    if step <= 0:
        return jsonify({"error": "step must be a positive number of minutes"}), 400

    points = bac_curve(store.get_all_events(_db_path()), profile, start, end, step_minutes=step)
    return jsonify({
        "legal_limit": _legal_limit(),
        "curve": [{"t": t.isoformat(timespec="minutes"), "bac": bac} for t, bac in points],
    })


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG", "0") == "1")
