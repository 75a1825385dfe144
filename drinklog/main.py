"""
Drink log CLI. Run from project root: python -m drinklog.main
Prints period stats and the current BAC estimate, from a database or a demo log.
"""

import argparse
import logging
import os
import sys
from datetime import date, datetime, timedelta
from typing import List

from drinklog import store
from drinklog.calculations import LEGAL_LIMIT_MG_L, estimate_bac, profile_from_settings
from drinklog.general import general_stats
from drinklog.graph import save_bac_graph
from drinklog.models import ConsumptionEvent, event_from_dict
from drinklog.periods import PERIODS, PERIOD_CUSTOM, date_range_for_period, events_in_range, parse_day
from drinklog.sessions import segment_sessions

logger = logging.getLogger(__name__)


def _legal_limit() -> float:
    raw = os.environ.get("LEGAL_LIMIT_MG_L")
    if raw is None:
        return LEGAL_LIMIT_MG_L
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid LEGAL_LIMIT_MG_L=%r", raw)
        return LEGAL_LIMIT_MG_L


def demo_events(now: datetime) -> List[ConsumptionEvent]:
    """Two beers an hour apart, plus an older night out one week earlier."""
    bar = {"latitude": 48.8566, "longitude": 2.3522, "address": "Rue de Rivoli, Paris"}
    rows = [
        (1.0, {"name": "Lager", "category": "Beer", "quantity": 25, "unit": "cL", "alcohol_content": 5.0,
               "location": bar}),
        (0.0, {"name": "Lager", "category": "Beer", "quantity": 25, "unit": "cL", "alcohol_content": 5.0,
               "location": bar}),
        (7 * 24 + 2.0, {"name": "Red wine", "category": "Wine", "quantity": 12, "unit": "cL",
                        "alcohol_content": 13.0}),
        (7 * 24 + 1.0, {"name": "Festival cup", "category": "Beer", "quantity": 1, "unit": "EcoCup",
                        "alcohol_content": 6.0}),
    ]
    events = []
    for i, (hours_ago, raw) in enumerate(rows, start=1):
        t = now - timedelta(hours=hours_ago)
        events.append(event_from_dict({**raw, "id": i, "date": t.strftime("%Y-%m-%d"), "time": t.strftime("%H:%M")}))
    return events


def main():
    parser = argparse.ArgumentParser(description="Drink log: period stats and BAC estimate")
    parser.add_argument("--db", type=str, default=os.environ.get("APP_DB_PATH"), help="SQLite database path")
    parser.add_argument("--period", choices=[p for p in PERIODS if p != PERIOD_CUSTOM], default="week")
    parser.add_argument("--date", type=str, help="Reference date YYYY-MM-DD (default: today)")
    parser.add_argument("--weight", type=float, help="Body weight (kg); overrides the stored setting")
    sex_group = parser.add_mutually_exclusive_group()
    sex_group.add_argument("--female", action="store_true", help="Use the female distribution ratio")
    sex_group.add_argument("--male", action="store_true", help="Use the male distribution ratio")
    parser.add_argument("--graph", type=str, metavar="FILE", help="Save BAC graph to FILE (e.g. bac_graph.png)")
    parser.add_argument("--demo", action="store_true", help="Use a built-in demo log instead of a database")
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "WARNING"))
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    reference = parse_day(args.date) if args.date else date.today()
    if reference is None:
        print("--date must be YYYY-MM-DD", file=sys.stderr)
        return 2
    now = datetime.combine(reference, datetime.now().time()).replace(second=0, microsecond=0)

    weight = args.weight
    sex = "female" if args.female else "male" if args.male else None
    if args.demo:
        events = demo_events(now)
        weight = weight or 70.0
        sex = sex or "male"
        print("Demo log: 2 beers in the last hour, 2 drinks one week ago")
    elif args.db:
        store.init_db(args.db)
        events = store.get_all_events(args.db)
        if weight is None:
            weight = store.get_setting(args.db, "userWeight")
        if sex is None:
            sex = store.get_setting(args.db, "userGender")
    else:
        print("Pass --db PATH (or set APP_DB_PATH), or use --demo.", file=sys.stderr)
        return 2

    date_range = date_range_for_period(args.period, reference)
    in_range = events_in_range(events, date_range)
    stats = general_stats(in_range, date_range, period=args.period, history=events)

    print(f"Period: {args.period} ({date_range.start} .. {date_range.end}, {stats.days} days)")
    print(f"Drinks: {stats.total_drinks}, volume {stats.total_volume} cL, alcohol {stats.total_alcohol} g")
    print(f"Sessions: {stats.total_sessions}, sober days: {stats.sober_days}")
    print(f"Per day {stats.avg_per_day}, per week {stats.avg_per_week}, per month {stats.avg_per_month}")
    for metric, change in (stats.comparison or {}).items():
        print(f"  {metric}: {change:+.1f}% vs previous {args.period}")

    sessions = segment_sessions(events)
    if sessions:
        latest = sessions[0]
        print(f"Latest session: {latest.drink_count} drinks over {latest.duration_hours:.1f}h")

    legal_limit = _legal_limit()
    profile = profile_from_settings(weight, sex)
    snapshot = estimate_bac(events, profile, at=now, legal_limit_mg_l=legal_limit)
    if snapshot is None:
        print("BAC: unavailable (set weight and sex)")
        return 0
    print(f"BAC at {now:%Y-%m-%d %H:%M}: {snapshot.current_bac:.0f} mg/L "
          f"(legal limit {legal_limit:.0f} mg/L)")
    print(f"Hours until sober: {snapshot.time_to_sobriety:.1f}h, "
          f"under the limit in {snapshot.time_to_legal_limit:.1f}h")

    if args.graph:
        try:
            path = save_bac_graph(events, profile, now, output_path=args.graph, legal_limit_mg_l=legal_limit)
            print(f"Graph saved: {path}")
        except ImportError:
            print("matplotlib not installed. pip install matplotlib", file=sys.stderr)
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main() or 0)
