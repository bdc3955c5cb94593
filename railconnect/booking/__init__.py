"""Booking draft, payment simulation and ticket creation."""

from .draft import BookingDraft, PassengerEntry
from .payment import PaymentMethod, PaymentReceipt, PaymentSimulator, upi_payment_uri
from .tickets import create_ticket, generate_pnr

__all__ = [
    "BookingDraft",
    "PassengerEntry",
    "PaymentMethod",
    "PaymentReceipt",
    "PaymentSimulator",
    "create_ticket",
    "generate_pnr",
    "upi_payment_uri",
]
