from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import enum
from typing import Any, Dict, List, Optional, Tuple

from ..errors import TicketStateError


class ClassType(str, enum.Enum):
    SL = "Sleeper (SL)"
    AC3 = "AC 3 Tier (3A)"
    AC2 = "AC 2 Tier (2A)"
    AC1 = "AC First Class (1A)"

    @property
    def code(self) -> str:
        return self.value[self.value.index("(") + 1 : -1]


class SeatStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    RAC = "RAC"
    WAITLIST = "WAITLIST"


class Gender(str, enum.Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class BookingStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


@dataclass(slots=True, frozen=True)
class Identity:
    """The signed-in user as reported by the auth backend."""

    id: str
    email: str
    name: str

    @classmethod
    def from_user(cls, user: Dict[str, Any]) -> "Identity":
        email = user.get("email") or ""
        metadata = user.get("user_metadata") or {}
        name = metadata.get("name") or email.split("@")[0]
        return cls(id=user["id"], email=email, name=name)


@dataclass(slots=True, frozen=True)
class FareClass:
    """One class row of a train offer: type, seats left, price and quota status."""

    type: ClassType
    available: int
    price: int
    status: SeatStatus

    @property
    def is_selectable(self) -> bool:
        return not (self.status is SeatStatus.WAITLIST and self.available == 0)

    def availability_label(self) -> str:
        if self.status is SeatStatus.AVAILABLE:
            return f"AVAILABLE {self.available}"
        if self.status is SeatStatus.RAC:
            return f"RAC {self.available}"
        return "WL"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "available": self.available,
            "price": self.price,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "FareClass":
        return cls(
            type=ClassType(payload["type"]),
            available=int(payload["available"]),
            price=int(payload["price"]),
            status=SeatStatus(payload["status"]),
        )


@dataclass(slots=True, frozen=True)
class TrainOffer:
    """A train returned by a search. Class order is kept as received."""

    number: str
    name: str
    origin: str
    destination: str
    departure_time: str
    arrival_time: str
    duration: str
    classes: Tuple[FareClass, ...] = ()

    def short_label(self) -> str:
        return f"{self.name} ({self.number})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trainNumber": self.number,
            "trainName": self.name,
            "source": self.origin,
            "destination": self.destination,
            "departureTime": self.departure_time,
            "arrivalTime": self.arrival_time,
            "duration": self.duration,
            "availability": [fare.to_dict() for fare in self.classes],
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "TrainOffer":
        return cls(
            number=str(payload["trainNumber"]),
            name=payload["trainName"],
            origin=payload["source"],
            destination=payload["destination"],
            departure_time=payload["departureTime"],
            arrival_time=payload["arrivalTime"],
            duration=payload["duration"],
            classes=tuple(FareClass.from_dict(item) for item in payload.get("availability", [])),
        )


@dataclass(slots=True, frozen=True)
class Passenger:
    name: str
    age: int
    gender: Gender = Gender.MALE
    mobile: str = ""
    email: str = ""
    berth_preference: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "age": self.age,
            "gender": self.gender.value,
            "mobile": self.mobile,
            "email": self.email,
        }
        if self.berth_preference:
            payload["berthPreference"] = self.berth_preference
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Passenger":
        return cls(
            name=payload["name"],
            age=int(payload["age"]),
            gender=Gender(payload.get("gender", Gender.MALE.value)),
            mobile=payload.get("mobile", ""),
            email=payload.get("email", ""),
            berth_preference=payload.get("berthPreference"),
        )


def _parse_timestamp(raw: str) -> datetime:
    # JavaScript-style ISO strings end in "Z", which fromisoformat rejects before 3.11.
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw)


@dataclass(slots=True)
class Ticket:
    """A booked e-ticket.

    Everything except ``status`` and ``synced`` is a snapshot taken when payment
    succeeded. ``total_amount`` is never recomputed, cancellation included.
    ``synced`` is False when the create write never reached the booking store.
    """

    pnr: str
    train: TrainOffer
    selected_class: FareClass
    passengers: Tuple[Passenger, ...]
    date: str
    status: BookingStatus
    booked_at: datetime
    total_amount: int
    synced: bool = field(default=True, compare=False)

    @property
    def is_cancelled(self) -> bool:
        return self.status is BookingStatus.CANCELLED

    def cancel(self) -> None:
        if self.status is not BookingStatus.CONFIRMED:
            raise TicketStateError(f"Ticket {self.pnr} is already {self.status.value.lower()}")
        self.status = BookingStatus.CANCELLED

    def berth_labels(self) -> List[str]:
        if self.is_cancelled:
            return [BookingStatus.CANCELLED.value for _ in self.passengers]
        return [f"CNF / S3 / {24 + idx}" for idx in range(len(self.passengers))]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pnr": self.pnr,
            "train": self.train.to_dict(),
            "selectedClass": self.selected_class.to_dict(),
            "passengers": [passenger.to_dict() for passenger in self.passengers],
            "date": self.date,
            "bookingStatus": self.status.value,
            "bookingDate": self.booked_at.isoformat(),
            "totalAmount": self.total_amount,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Ticket":
        booked_raw = payload.get("bookingDate")
        return cls(
            pnr=str(payload["pnr"]),
            train=TrainOffer.from_dict(payload["train"]),
            selected_class=FareClass.from_dict(payload["selectedClass"]),
            passengers=tuple(Passenger.from_dict(item) for item in payload.get("passengers", [])),
            date=payload["date"],
            status=BookingStatus(payload.get("bookingStatus", BookingStatus.CONFIRMED.value)),
            booked_at=_parse_timestamp(booked_raw) if booked_raw else datetime.now(timezone.utc),
            total_amount=int(payload["totalAmount"]),
        )
