"""Static offers served when the train generator is unavailable."""

from __future__ import annotations

from typing import Tuple

from ..models.ticket import ClassType, FareClass, SeatStatus, TrainOffer

FALLBACK_TRAINS: Tuple[TrainOffer, ...] = (
    TrainOffer(
        number="12951",
        name="Rajdhani Express",
        origin="Mumbai",
        destination="Delhi",
        departure_time="17:00",
        arrival_time="08:30",
        duration="15h 30m",
        classes=(
            FareClass(ClassType.AC1, available=12, price=4500, status=SeatStatus.AVAILABLE),
            FareClass(ClassType.AC2, available=45, price=2800, status=SeatStatus.AVAILABLE),
            FareClass(ClassType.AC3, available=120, price=1900, status=SeatStatus.AVAILABLE),
        ),
    ),
    TrainOffer(
        number="12903",
        name="Golden Temple Mail",
        origin="Mumbai",
        destination="Amritsar",
        departure_time="18:45",
        arrival_time="07:20",
        duration="12h 35m",
        classes=(
            FareClass(ClassType.AC2, available=8, price=2400, status=SeatStatus.RAC),
            FareClass(ClassType.AC3, available=0, price=1600, status=SeatStatus.WAITLIST),
            FareClass(ClassType.SL, available=200, price=650, status=SeatStatus.AVAILABLE),
        ),
    ),
    TrainOffer(
        number="22221",
        name="Vande Bharat Exp",
        origin="Mumbai",
        destination="Gandhinagar",
        departure_time="06:10",
        arrival_time="12:25",
        duration="6h 15m",
        classes=(
            FareClass(ClassType.AC1, available=50, price=1500, status=SeatStatus.AVAILABLE),
            FareClass(ClassType.AC2, available=145, price=900, status=SeatStatus.AVAILABLE),
        ),
    ),
)
