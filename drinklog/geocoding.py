"""Reverse geocoding for geo-tagged drinks (Nominatim-compatible endpoint).

Enrichment is best-effort: a failed lookup is logged and the drink keeps a
null address.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

import httpx

from drinklog import store

logger = logging.getLogger(__name__)

DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org"
DEFAULT_TIMEOUT = 10.0
USER_AGENT = "drinklog/0.1"


def format_address(data: dict[str, Any]) -> dict[str, Any]:
    """Build a one-line address plus its components from a Nominatim payload."""
    address = data.get("address") or {}
    parts: list[str] = []

    road = address.get("road")
    house_number = address.get("house_number")
    if road and house_number:
        parts.append(f"{house_number} {road}")
    elif road:
        parts.append(road)

    city = address.get("city") or address.get("town") or address.get("village") or address.get("municipality")
    if city:
        parts.append(city)
    if address.get("postcode"):
        parts.append(address["postcode"])
    if address.get("country"):
        parts.append(address["country"])

    return {
        "formatted": ", ".join(parts),
        "components": {
            "house_number": house_number,
            "street": road,
            "city": city,
            "postcode": address.get("postcode"),
            "state": address.get("state"),
            "country": address.get("country"),
            "country_code": address.get("country_code"),
        },
    }


async def reverse_geocode(
    latitude: float,
    longitude: float,
    *,
    client: httpx.AsyncClient | None = None,
    base_url: str = DEFAULT_GEOCODER_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """Look up the address at a point. Raises httpx.HTTPError or ValueError on failure."""
    params = {
        "format": "json",
        "lat": latitude,
        "lon": longitude,
        "zoom": 18,
        "addressdetails": 1,
    }
    url = base_url.rstrip("/") + "/reverse"
    headers = {"User-Agent": USER_AGENT}

    if client is None:
        async with httpx.AsyncClient(timeout=timeout) as c:
            r = await c.get(url, params=params, headers=headers)
    else:
        r = await client.get(url, params=params, headers=headers)
    r.raise_for_status()

    data = r.json()
    if not isinstance(data, dict):
        raise ValueError("Unexpected geocoder payload")
    if data.get("error"):
        raise ValueError(str(data["error"]))
    return format_address(data)


Geocoder = Callable[[float, float], Awaitable[dict[str, Any]]]


async def enrich_event_address(db_path: str, event_id: int, *, geocoder: Geocoder = reverse_geocode) -> str | None:
    """Resolve and store the address of a geo-tagged drink. Returns the address or None."""
    event = store.get_event(db_path, event_id)
    if event is None or event.location is None:
        return None
    if event.location.address:
        return event.location.address

    try:
        result = await geocoder(event.location.latitude, event.location.longitude)
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Reverse geocoding failed for drink %s: %s", event_id, e)
        return None

    address = (result or {}).get("formatted") or None
    if address is None:
        logger.info("No address found for drink %s", event_id)
        return None
    store.set_event_address(db_path, event_id=event_id, address=address)
    return address
