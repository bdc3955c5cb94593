"""Booking persistence."""

from .bookings import BookingStore, rows_to_tickets

__all__ = ["BookingStore", "rows_to_tickets"]
