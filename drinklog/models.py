"""Drink log records: consumption events, locations, categories, date ranges."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def parse_timestamp(day: str, time: str) -> Optional[datetime]:
    """Combine `YYYY-MM-DD` and `HH:MM` into a naive local datetime, or None."""
    if not day or not time:
        return None
    try:
        # Tolerate HH:MM:SS coming from older exports.
        return datetime.strptime(f"{day} {time[:5]}", f"{DATE_FORMAT} {TIME_FORMAT}")
    except (TypeError, ValueError):
        return None


def parse_day(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), DATE_FORMAT).date()
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "address": self.address,
        }


@dataclass(frozen=True)
class ConsumptionEvent:
    """One logged drink. Snapshot at insert time; the store hands out new copies on update."""

    id: Optional[int]
    name: str
    category: str
    quantity: float
    unit: str
    date: str  # YYYY-MM-DD, local
    time: str  # HH:MM, local
    alcohol_content: float = 0.0  # % ABV
    location: Optional[Location] = None
    barcode: Optional[str] = None

    @property
    def timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.date, self.time)

    @property
    def day(self) -> Optional[date]:
        return parse_day(self.date)

    @property
    def hour(self) -> Optional[int]:
        ts = self.timestamp
        return ts.hour if ts else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "quantity": self.quantity,
            "unit": self.unit,
            "alcohol_content": self.alcohol_content,
            "date": self.date,
            "time": self.time,
            "location": self.location.to_dict() if self.location else None,
            "barcode": self.barcode,
        }


def location_from_dict(raw: Any) -> Optional[Location]:
    if not isinstance(raw, dict):
        return None
    try:
        lat = float(raw.get("latitude"))
        lng = float(raw.get("longitude"))
    except (TypeError, ValueError):
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        return None
    accuracy = raw.get("accuracy")
    try:
        accuracy = float(accuracy) if accuracy is not None else None
    except (TypeError, ValueError):
        accuracy = None
    address = raw.get("address") or None
    return Location(latitude=lat, longitude=lng, accuracy=accuracy, address=address)


def event_from_dict(raw: Dict[str, Any]) -> ConsumptionEvent:
    """Build an event from a plain dict (API payload, fixture, export). Lenient on optional fields."""
    try:
        abv = float(raw.get("alcohol_content") or 0.0)
    except (TypeError, ValueError):
        abv = 0.0
    try:
        quantity = float(raw.get("quantity") or 0.0)
    except (TypeError, ValueError):
        quantity = 0.0
    return ConsumptionEvent(
        id=raw.get("id"),
        name=str(raw.get("name", "")).strip(),
        category=str(raw.get("category", "")).strip(),
        quantity=quantity,
        unit=str(raw.get("unit", "cL")),
        date=str(raw.get("date", "")),
        time=str(raw.get("time", "")),
        alcohol_content=max(0.0, min(100.0, abv)),
        location=location_from_dict(raw.get("location")),
        barcode=raw.get("barcode") or None,
    )


@dataclass
class Category:
    id: Optional[int]
    name: str
    drink_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "drink_count": self.drink_count}


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-date window."""

    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass
class BodyProfile:
    weight_kg: float
    sex: str  # "male" or "female"

    @property
    def is_male(self) -> bool:
        return self.sex == "male"


@dataclass
class BACSnapshot:
    current_bac: float  # mg/L
    time_to_sobriety: float  # hours
    time_to_legal_limit: float  # hours
    legal_limit: float  # mg/L
    relevant_drinks: list = field(default_factory=list)

    @property
    def is_above_legal_limit(self) -> bool:
        return self.current_bac > self.legal_limit

    def to_dict(self) -> Dict[str, Any]:
        return {
            "available": True,
            "current_bac": round(self.current_bac, 2),
            "time_to_sobriety": round(self.time_to_sobriety, 2),
            "time_to_legal_limit": round(self.time_to_legal_limit, 2),
            "legal_limit": self.legal_limit,
            "is_above_legal_limit": self.is_above_legal_limit,
            "relevant_drinks": [e.to_dict() for e in self.relevant_drinks],
        }
