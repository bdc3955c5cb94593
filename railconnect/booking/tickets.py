from __future__ import annotations

from datetime import datetime, timezone
import logging
import random
from typing import Sequence

from ..models.ticket import BookingStatus, FareClass, Passenger, Ticket, TrainOffer

LOGGER = logging.getLogger(__name__)


def generate_pnr() -> str:
    # Collisions with existing PNRs are possible; nothing checks the store.
    return str(random.randint(1_000_000_000, 9_999_999_999))


def create_ticket(
    train: TrainOffer,
    selected_class: FareClass,
    passengers: Sequence[Passenger],
    travel_date: str,
    *,
    now: datetime | None = None,
) -> Ticket:
    """Build a confirmed ticket from the booking snapshot."""

    if not passengers:
        raise ValueError("A ticket needs at least one passenger")
    ticket = Ticket(
        pnr=generate_pnr(),
        train=train,
        selected_class=selected_class,
        passengers=tuple(passengers),
        date=travel_date,
        status=BookingStatus.CONFIRMED,
        booked_at=now or datetime.now(timezone.utc),
        total_amount=selected_class.price * len(passengers),
    )
    LOGGER.info("Created ticket %s for %s (%d passengers)", ticket.pnr, train.short_label(), len(passengers))
    return ticket
