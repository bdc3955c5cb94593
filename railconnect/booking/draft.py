from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, List, Optional, Tuple

from ..errors import BookingValidationError
from ..models.ticket import FareClass, Gender, Passenger, TrainOffer

LOGGER = logging.getLogger(__name__)

MAX_AGE = 120


@dataclass(slots=True)
class PassengerEntry:
    """Editable passenger row. Validated only when the draft is submitted."""

    name: str = ""
    age: int = 0
    gender: Gender = Gender.MALE
    berth_preference: Optional[str] = None


@dataclass(slots=True)
class BookingDraft:
    """Passenger and contact details collected for one train and fare class."""

    train: TrainOffer
    selected_class: FareClass
    travel_date: str
    max_passengers: int = 6
    entries: List[PassengerEntry] = field(default_factory=lambda: [PassengerEntry()])
    contact_mobile: str = ""
    contact_email: str = ""

    @property
    def fare_total(self) -> int:
        return self.selected_class.price * len(self.entries)

    def add_passenger(self) -> PassengerEntry:
        if len(self.entries) >= self.max_passengers:
            raise BookingValidationError(f"A booking can hold at most {self.max_passengers} passengers")
        entry = PassengerEntry()
        self.entries.append(entry)
        return entry

    def remove_passenger(self, index: int) -> None:
        if len(self.entries) <= 1:
            raise BookingValidationError("A booking needs at least one passenger")
        del self.entries[index]

    def update_passenger(self, index: int, **fields: Any) -> PassengerEntry:
        entry = self.entries[index]
        for name, value in fields.items():
            if name not in PassengerEntry.__slots__:
                raise AttributeError(f"Unknown passenger field: {name}")
            if name == "gender" and not isinstance(value, Gender):
                value = Gender(value)
            setattr(entry, name, value)
        return entry

    def submit(self) -> Tuple[Passenger, ...]:
        """Validate the whole draft and return the passengers to be ticketed.

        Contact mobile and email are copied onto every passenger.
        """

        if not 1 <= len(self.entries) <= self.max_passengers:
            raise BookingValidationError(f"Passenger count must be between 1 and {self.max_passengers}")
        for idx, entry in enumerate(self.entries, start=1):
            if not entry.name.strip() or entry.age <= 0:
                raise BookingValidationError(f"Passenger {idx}: name and a positive age are required")
            if entry.age > MAX_AGE:
                raise BookingValidationError(f"Passenger {idx}: age must be at most {MAX_AGE}")
        mobile = self.contact_mobile.strip()
        email = self.contact_email.strip()
        if not mobile or not email:
            raise BookingValidationError("Contact mobile and email are required")

        passengers = tuple(
            Passenger(
                name=entry.name.strip(),
                age=entry.age,
                gender=entry.gender,
                mobile=mobile,
                email=email,
                berth_preference=entry.berth_preference,
            )
            for entry in self.entries
        )
        LOGGER.debug("Draft for %s submitted with %d passengers", self.train.number, len(passengers))
        return passengers
