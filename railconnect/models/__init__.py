"""Data models."""

from .ticket import (
    BookingStatus,
    ClassType,
    FareClass,
    Gender,
    Identity,
    Passenger,
    SeatStatus,
    Ticket,
    TrainOffer,
)

__all__ = [
    "BookingStatus",
    "ClassType",
    "FareClass",
    "Gender",
    "Identity",
    "Passenger",
    "SeatStatus",
    "Ticket",
    "TrainOffer",
]
