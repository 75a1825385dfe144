"""
BAC-over-time graph. Produces an image file or returns plain data for a frontend.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from drinklog.calculations import LEGAL_LIMIT_MG_L, bac_curve, hours_until
from drinklog.models import BodyProfile, ConsumptionEvent


def curve_data(
    events: Iterable[ConsumptionEvent],
    profile: BodyProfile,
    at: datetime,
    step_minutes: int = 15,
    hours_before: float = 1.0,
) -> List[Tuple[float, float]]:
    """(hours relative to `at`, bac_mg_l) from a little before `at` until sober."""
    events = list(events)
    sober_in = hours_until(at, events, profile, 0.0)
    start = at - timedelta(hours=hours_before)
    end = at + timedelta(hours=max(sober_in, 0.0) + 0.5)
    return [
        (round((t - at).total_seconds() / 3600.0, 2), bac)
        for t, bac in bac_curve(events, profile, start, end, step_minutes=step_minutes)
    ]


def save_bac_graph(
    events: Iterable[ConsumptionEvent],
    profile: BodyProfile,
    at: datetime,
    output_path: str = "bac_graph.png",
    step_minutes: int = 15,
    legal_limit_mg_l: float = LEGAL_LIMIT_MG_L,
    title: Optional[str] = None,
) -> str:
    """
    Plot the BAC curve with matplotlib and save to file.
    Returns path to saved file. Requires: pip install matplotlib
    """
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError:
        raise ImportError("matplotlib is required for save_bac_graph. pip install drinklog[graph]")

    points = curve_data(events, profile, at, step_minutes=step_minutes)
    if not points:
        times, bacs = [0.0], [0.0]
    else:
        times, bacs = zip(*points)

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(times, bacs, color="#2563eb", linewidth=2, label="BAC")
    ax.fill_between(times, bacs, alpha=0.2, color="#2563eb")
    ax.axhline(
        y=legal_limit_mg_l,
        color="#dc2626",
        linestyle="--",
        linewidth=1,
        label=f"Legal limit ({legal_limit_mg_l:.0f} mg/L)",
    )
    ax.axvline(x=0, color="#6b7280", linestyle=":", linewidth=1)
    ax.set_xlabel(f"Hours from {at:%Y-%m-%d %H:%M}")
    ax.set_ylabel("BAC (mg/L)")
    ax.set_title(title or "Estimated BAC")
    ax.legend(loc="upper right")
    ax.set_ylim(bottom=0)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path
