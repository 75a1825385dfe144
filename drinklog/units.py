"""Volume normalization and alcohol mass helpers.

All volumes are normalized to centiliters (cL) before aggregation.
"""

import logging

logger = logging.getLogger(__name__)

# Ethanol density (g/mL) for volume x ABV -> grams.
ETHANOL_DENSITY = 0.8

UNIT_CL = "cL"
UNIT_L = "L"
UNIT_ECOCUP = "EcoCup"

UNITS = (UNIT_CL, UNIT_L, UNIT_ECOCUP)

# An EcoCup is one standard serving whatever the quantity typed in.
ECOCUP_VOLUME_CL = 25.0


def normalize(quantity: float, unit: str) -> float:
    """Convert a quantity in `unit` to centiliters."""
    if unit == UNIT_ECOCUP:
        return ECOCUP_VOLUME_CL
    if unit == UNIT_L:
        return quantity * 100.0
    if unit != UNIT_CL:
        logger.debug("Unknown unit %r, treating quantity as cL", unit)
    return quantity


def alcohol_grams(volume_cl: float, abv_percent: float) -> float:
    """Grams of pure ethanol in `volume_cl` centiliters at `abv_percent` % ABV."""
    if not abv_percent or abv_percent < 0:
        return 0.0
    # cL -> mL is x10, percent -> fraction is /100, hence /10 overall.
    return volume_cl * abv_percent * ETHANOL_DENSITY / 10.0


def event_volume(event) -> float:
    return normalize(event.quantity, event.unit)


def event_alcohol_grams(event) -> float:
    return alcohol_grams(event_volume(event), event.alcohol_content)
