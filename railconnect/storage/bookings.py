from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests

from ..auth.session import SessionHolder
from ..config.settings import Settings
from ..errors import StoreError
from ..models.ticket import BookingStatus, Ticket

LOGGER = logging.getLogger(__name__)

BOOKINGS_PATH = "/rest/v1/bookings"


class BookingStore:
    """Booking rows kept in the Supabase ``bookings`` table.

    Each row holds ``user_id``, ``pnr``, ``status`` and the full ticket snapshot
    in ``ticket_details``. The ``status`` column is the authoritative one.
    """

    def __init__(self, settings: Settings, holder: SessionHolder) -> None:
        self._settings = settings
        self._holder = holder

    def save_booking(self, user_id: str, ticket: Ticket) -> bool:
        """Insert a booking row. Failures are logged, never raised."""

        if not self._settings.store_enabled:
            LOGGER.warning("Booking store not configured; ticket %s kept locally only", ticket.pnr)
            return False

        row = {
            "user_id": user_id,
            "pnr": ticket.pnr,
            "status": ticket.status.value,
            "ticket_details": ticket.to_dict(),
        }
        try:
            response = requests.post(
                self._url(),
                json=[row],
                headers=self._headers(prefer="return=representation"),
                timeout=self._settings.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            LOGGER.error("Failed to save booking %s: %s", ticket.pnr, exc)
            return False
        if response.status_code >= 400:
            LOGGER.error("Failed to save booking %s: %s | %s", ticket.pnr, response.status_code, response.text)
            return False
        LOGGER.info("Saved booking %s", ticket.pnr)
        return True

    def cancel_booking(self, pnr: str) -> Dict[str, Any]:
        """Mark the row for ``pnr`` cancelled. Every failure raises ``StoreError``."""

        if not self._settings.store_enabled:
            raise StoreError("Booking store is not configured")
        try:
            response = requests.patch(
                self._url(),
                params={"pnr": f"eq.{pnr}"},
                json={"status": BookingStatus.CANCELLED.value},
                headers=self._headers(prefer="return=representation"),
                timeout=self._settings.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            LOGGER.error("Failed to cancel booking %s: %s", pnr, exc)
            raise StoreError(f"Could not reach the booking store: {exc}") from exc
        if response.status_code >= 400:
            LOGGER.error("Failed to cancel booking %s: %s | %s", pnr, response.status_code, response.text)
            raise StoreError(f"Booking store rejected cancellation ({response.status_code})")

        rows = response.json()
        if not rows:
            LOGGER.error("Failed to cancel booking %s: no matching row", pnr)
            raise StoreError(f"No booking found for PNR {pnr}")
        LOGGER.info("Cancelled booking %s", pnr)
        return rows[0]

    def list_bookings(self, user_id: str) -> List[Ticket]:
        """Every ticket stored for ``user_id``, newest first.

        The row's ``status`` column overrides the status embedded in the
        snapshot. Failures are logged and yield an empty list.
        """

        if not self._settings.store_enabled:
            LOGGER.warning("Booking store not configured; no history available")
            return []
        try:
            response = requests.get(
                self._url(),
                params={"select": "*", "user_id": f"eq.{user_id}", "order": "created_at.desc"},
                headers=self._headers(),
                timeout=self._settings.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            LOGGER.error("Failed to fetch bookings: %s", exc)
            return []
        if response.status_code >= 400:
            LOGGER.error("Failed to fetch bookings: %s | %s", response.status_code, response.text)
            return []
        return rows_to_tickets(response.json())

    def _url(self) -> str:
        return self._settings.supabase_endpoint(BOOKINGS_PATH)

    def _headers(self, *, prefer: str | None = None) -> Dict[str, str]:
        token = self._holder.access_token or self._settings.supabase_anon_key or ""
        headers = {
            "apikey": self._settings.supabase_anon_key or "",
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers


def rows_to_tickets(rows: List[Dict[str, Any]]) -> List[Ticket]:
    tickets: List[Ticket] = []
    for row in rows:
        try:
            details = dict(row["ticket_details"])
            details["bookingStatus"] = row.get("status") or details.get("bookingStatus")
            tickets.append(Ticket.from_dict(details))
        except (KeyError, TypeError, ValueError) as exc:
            LOGGER.warning("Skipping malformed booking row %s: %s", row.get("pnr", "?"), exc)
    return tickets
