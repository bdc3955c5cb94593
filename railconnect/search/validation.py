from __future__ import annotations

from datetime import datetime
import logging
import math
from typing import Any, Dict, List

from ..errors import BookingValidationError
from ..models.ticket import ClassType, FareClass, SeatStatus, TrainOffer

LOGGER = logging.getLogger(__name__)

_DATE_FMT = "%Y-%m-%d"
_REQUIRED_TRAIN_FIELDS = (
    "trainNumber",
    "trainName",
    "source",
    "destination",
    "departureTime",
    "arrivalTime",
    "duration",
    "availability",
)


def validate_search(origin: str, destination: str, travel_date: str) -> tuple[str, str, str]:
    """Return the stripped search triple or raise when a field is unusable."""

    origin = (origin or "").strip()
    destination = (destination or "").strip()
    travel_date = (travel_date or "").strip()
    if not origin or not destination or not travel_date:
        raise BookingValidationError("Origin, destination and date are required")
    try:
        datetime.strptime(travel_date, _DATE_FMT)
    except ValueError as exc:
        raise BookingValidationError(f"Travel date must be YYYY-MM-DD, got {travel_date!r}") from exc
    return origin, destination, travel_date


def parse_train_offers(payload: Any) -> List[TrainOffer]:
    """Coerce an untrusted generator payload into offers.

    Entries that cannot be coerced are dropped and logged. The order of the
    surviving entries is the order received.
    """

    if isinstance(payload, dict):
        payload = payload.get("trains", payload.get("items"))
    if not isinstance(payload, list):
        raise ValueError(f"Expected a JSON list of trains, got {type(payload).__name__}")

    offers: List[TrainOffer] = []
    for idx, item in enumerate(payload):
        try:
            offers.append(_coerce_offer(item))
        except (KeyError, TypeError, ValueError) as exc:
            LOGGER.warning("Dropping train entry #%d: %s", idx, exc)
    return offers


def _coerce_offer(item: Any) -> TrainOffer:
    if not isinstance(item, dict):
        raise TypeError(f"train entry is {type(item).__name__}, not an object")
    missing = [name for name in _REQUIRED_TRAIN_FIELDS if item.get(name) in (None, "")]
    if missing:
        raise KeyError(f"missing fields: {', '.join(missing)}")
    availability = item["availability"]
    if not isinstance(availability, list):
        raise TypeError("availability is not a list")

    classes = []
    for raw_class in availability:
        try:
            classes.append(_coerce_fare(raw_class))
        except (KeyError, TypeError, ValueError) as exc:
            LOGGER.debug("Dropping class entry for train %s: %s", item["trainNumber"], exc)
    if not classes:
        raise ValueError(f"train {item['trainNumber']} has no usable classes")

    return TrainOffer(
        number=str(item["trainNumber"]).strip(),
        name=str(item["trainName"]).strip(),
        origin=str(item["source"]).strip(),
        destination=str(item["destination"]).strip(),
        departure_time=str(item["departureTime"]).strip(),
        arrival_time=str(item["arrivalTime"]).strip(),
        duration=str(item["duration"]).strip(),
        classes=tuple(classes),
    )


def _coerce_fare(raw: Any) -> FareClass:
    if not isinstance(raw, dict):
        raise TypeError("class entry is not an object")
    available = _non_negative_int(raw.get("available"), "available")
    price = _non_negative_int(raw.get("price"), "price")
    return FareClass(
        type=_coerce_class_type(raw.get("type")),
        available=available,
        price=price,
        status=_coerce_status(raw.get("status")),
    )


def _coerce_class_type(raw: Any) -> ClassType:
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError(f"unknown class type {raw!r}")
    label = raw.strip()
    for class_type in ClassType:
        if label.lower() in (class_type.value.lower(), class_type.name.lower(), class_type.code.lower()):
            return class_type
    raise ValueError(f"unknown class type {raw!r}")


def _coerce_status(raw: Any) -> SeatStatus:
    if not isinstance(raw, str):
        raise ValueError(f"unknown seat status {raw!r}")
    label = raw.strip().upper()
    if label == "WL":
        label = SeatStatus.WAITLIST.value
    return SeatStatus(label)


def _non_negative_int(raw: Any, name: str) -> int:
    if isinstance(raw, bool) or raw is None:
        raise ValueError(f"{name} is missing")
    if isinstance(raw, str):
        digits = raw.strip().replace(",", "")
        value = _finite_int(float(digits), name) if digits else None
    elif isinstance(raw, float):
        value = _finite_int(raw, name)
    elif isinstance(raw, int):
        value = raw
    else:
        value = None
    if value is None:
        raise ValueError(f"{name} is not a number: {raw!r}")
    if value < 0:
        raise ValueError(f"{name} is negative: {value}")
    return value


def _finite_int(value: float, name: str) -> int:
    if not math.isfinite(value):
        raise ValueError(f"{name} is not finite: {value!r}")
    return int(value)


def response_schema() -> Dict[str, Any]:
    """JSON schema hint sent with the generation request."""

    fare_schema = {
        "type": "OBJECT",
        "properties": {
            "type": {"type": "STRING", "enum": [class_type.value for class_type in ClassType]},
            "available": {"type": "INTEGER"},
            "price": {"type": "INTEGER"},
            "status": {"type": "STRING", "enum": [status.value for status in SeatStatus]},
        },
        "required": ["type", "available", "price", "status"],
    }
    return {
        "type": "ARRAY",
        "items": {
            "type": "OBJECT",
            "properties": {
                "trainNumber": {"type": "STRING"},
                "trainName": {"type": "STRING"},
                "source": {"type": "STRING"},
                "destination": {"type": "STRING"},
                "departureTime": {"type": "STRING", "description": "24hr format HH:MM"},
                "arrivalTime": {"type": "STRING", "description": "24hr format HH:MM"},
                "duration": {"type": "STRING", "description": "e.g., 12h 30m"},
                "availability": {"type": "ARRAY", "items": fare_schema},
            },
            "required": list(_REQUIRED_TRAIN_FIELDS),
        },
    }
