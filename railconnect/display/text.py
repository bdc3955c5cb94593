from __future__ import annotations

from typing import List, Sequence

from ..models.ticket import Ticket, TrainOffer

SECTION_DIVIDER = "────────────────────"


def format_offer_table(offers: Sequence[TrainOffer], currency: str = "INR") -> str:
    """Return a simple ASCII table with one row per train class."""

    if not offers:
        return "No trains to display."

    headers = ["#", "Train", "Depart", "Arrive", "Duration", "Class", "Price", "Status"]
    rows: List[List[str]] = []
    for idx, offer in enumerate(offers, start=1):
        for class_idx, fare in enumerate(offer.classes):
            rows.append(
                [
                    f"{idx}.{class_idx + 1}",
                    offer.short_label() if class_idx == 0 else "",
                    offer.departure_time if class_idx == 0 else "",
                    offer.arrival_time if class_idx == 0 else "",
                    offer.duration if class_idx == 0 else "",
                    fare.type.value,
                    format_price(fare.price, currency),
                    fare.availability_label() + ("" if fare.is_selectable else " (closed)"),
                ]
            )

    widths = [len(header) for header in headers]
    for row in rows:
        for idx, value in enumerate(row):
            widths[idx] = max(widths[idx], len(value))

    header_line = " | ".join(header.ljust(widths[idx]) for idx, header in enumerate(headers))
    divider = "-+-".join("-" * width for width in widths)
    data_lines = [" | ".join(row[idx].ljust(widths[idx]) for idx in range(len(headers))) for row in rows]
    return "\n".join([header_line, divider, *data_lines])


def format_ticket(ticket: Ticket, currency: str = "INR") -> str:
    """Render the e-ticket as printed after booking or from history."""

    if ticket.is_cancelled:
        banner = ["❌ Ticket Cancelled", "Your ticket has been cancelled successfully. Refund initiated."]
    else:
        banner = ["✅ Booking Confirmed!", "Your journey is scheduled. Have a safe trip!"]

    train = ticket.train
    lines = [
        *banner,
        "",
        SECTION_DIVIDER,
        f"PNR    : {ticket.pnr}",
        f"Train  : {train.short_label()}",
        f"Route  : {train.origin} {train.departure_time} -> {train.destination} {train.arrival_time}",
        f"Date   : {ticket.date} ({train.duration})",
        f"Class  : {ticket.selected_class.type.value}",
        f"Status : {ticket.status.value}",
        SECTION_DIVIDER,
        "Passengers:",
    ]
    for idx, (passenger, berth) in enumerate(zip(ticket.passengers, ticket.berth_labels()), start=1):
        lines.append(f"  {idx}. {passenger.name} ({passenger.age}, {passenger.gender.value}) - {berth}")
    if ticket.passengers:
        lines.append(f"Contact: {ticket.passengers[0].mobile} / {ticket.passengers[0].email}")
    lines.extend(
        [
            SECTION_DIVIDER,
            f"Total  : {format_price(ticket.total_amount, currency)}",
            f"Booked : {ticket.booked_at.strftime('%Y-%m-%d %H:%M')}",
        ]
    )
    if not ticket.synced:
        lines.append("Note   : not yet saved to your account")
    return "\n".join(lines)


def format_history(tickets: Sequence[Ticket], currency: str = "INR") -> str:
    if not tickets:
        return "No bookings yet."

    lines = ["My Bookings", SECTION_DIVIDER]
    for ticket in tickets:
        lines.append(
            f"{ticket.pnr} | {ticket.train.short_label()} | {ticket.date} | "
            f"{len(ticket.passengers)} pax | {format_price(ticket.total_amount, currency)} | {ticket.status.value}"
        )
    return "\n".join(lines)


def cancellation_prompt(fee: int, currency: str = "INR") -> str:
    # The fee is informational; nothing deducts it from the ticket total.
    return f"Are you sure you want to cancel this booking? A cancellation charge of {format_price(fee, currency)} will apply."


def format_price(value: int, currency: str = "INR") -> str:
    symbol = "₹" if currency == "INR" else f"{currency} "
    return f"{symbol}{value:,}"
