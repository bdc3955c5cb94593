from datetime import datetime, timezone

import pytest
import requests

from railconnect.auth import Session, SessionHolder
from railconnect.booking import create_ticket
from railconnect.errors import StoreError
from railconnect.models import BookingStatus, Gender, Passenger
from railconnect.search import FALLBACK_TRAINS
from railconnect.storage import BookingStore, rows_to_tickets

from .conftest import ALICE, FakeResponse


@pytest.fixture
def ticket():
    train = FALLBACK_TRAINS[1]
    passengers = (Passenger("Asha", 34, Gender.FEMALE, "9876543210", "asha@example.com"),)
    return create_ticket(train, train.classes[0], passengers, "2024-06-15", now=datetime(2024, 6, 1, tzinfo=timezone.utc))


@pytest.fixture
def booking_store(store_settings):
    holder = SessionHolder()
    holder.set(Session(identity=ALICE, access_token="user-token"))
    return BookingStore(store_settings, holder)


def test_save_posts_row_with_snapshot(booking_store, ticket, monkeypatch):
    captured = {}

    def fake_post(url, **kwargs):
        captured.update(url=url, **kwargs)
        return FakeResponse(201, [{"pnr": ticket.pnr}])

    monkeypatch.setattr(requests, "post", fake_post)
    assert booking_store.save_booking(ALICE.id, ticket) is True

    assert captured["url"] == "https://demo.supabase.co/rest/v1/bookings"
    row = captured["json"][0]
    assert row["user_id"] == ALICE.id
    assert row["pnr"] == ticket.pnr
    assert row["status"] == "CONFIRMED"
    assert row["ticket_details"]["totalAmount"] == ticket.total_amount
    assert captured["headers"]["Authorization"] == "Bearer user-token"
    assert captured["headers"]["apikey"] == "anon-key"


@pytest.mark.parametrize("failure", ["http", "network"])
def test_save_failures_are_swallowed(booking_store, ticket, monkeypatch, failure, caplog):
    def fake_post(url, **kwargs):
        if failure == "network":
            raise requests.ConnectionError("offline")
        return FakeResponse(500, {"message": "db down"}, text="db down")

    monkeypatch.setattr(requests, "post", fake_post)
    assert booking_store.save_booking(ALICE.id, ticket) is False
    assert "Failed to save booking" in caplog.text


def test_save_without_store_configured(settings, ticket):
    assert BookingStore(settings, SessionHolder()).save_booking(ALICE.id, ticket) is False


def test_cancel_patches_status(booking_store, monkeypatch):
    captured = {}

    def fake_patch(url, **kwargs):
        captured.update(url=url, **kwargs)
        return FakeResponse(200, [{"pnr": "1234567890", "status": "CANCELLED"}])

    monkeypatch.setattr(requests, "patch", fake_patch)
    row = booking_store.cancel_booking("1234567890")
    assert row["status"] == "CANCELLED"
    assert captured["params"] == {"pnr": "eq.1234567890"}
    assert captured["json"] == {"status": "CANCELLED"}


@pytest.mark.parametrize(
    "response",
    [FakeResponse(500, {"message": "db down"}, text="db down"), FakeResponse(200, [])],
)
def test_cancel_failures_propagate(booking_store, monkeypatch, response):
    monkeypatch.setattr(requests, "patch", lambda url, **kwargs: response)
    with pytest.raises(StoreError):
        booking_store.cancel_booking("1234567890")


def test_cancel_network_error_propagates(booking_store, monkeypatch):
    def fake_patch(url, **kwargs):
        raise requests.Timeout("slow")

    monkeypatch.setattr(requests, "patch", fake_patch)
    with pytest.raises(StoreError):
        booking_store.cancel_booking("1234567890")


def test_cancel_without_store_configured(settings):
    with pytest.raises(StoreError):
        BookingStore(settings, SessionHolder()).cancel_booking("1234567890")


def test_list_prefers_status_column(booking_store, ticket, monkeypatch):
    captured = {}
    rows = [{"pnr": ticket.pnr, "status": "CANCELLED", "ticket_details": ticket.to_dict()}]

    def fake_get(url, **kwargs):
        captured.update(url=url, **kwargs)
        return FakeResponse(200, rows)

    monkeypatch.setattr(requests, "get", fake_get)
    tickets = booking_store.list_bookings(ALICE.id)

    assert ticket.to_dict()["bookingStatus"] == "CONFIRMED"
    assert [t.status for t in tickets] == [BookingStatus.CANCELLED]
    assert captured["params"]["user_id"] == f"eq.{ALICE.id}"
    assert captured["params"]["order"] == "created_at.desc"


def test_list_failure_returns_empty(booking_store, monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, **kwargs: FakeResponse(503, text="unavailable"))
    assert booking_store.list_bookings(ALICE.id) == []


def test_malformed_rows_are_skipped(ticket):
    rows = [
        {"pnr": "1", "status": "CONFIRMED", "ticket_details": {"pnr": "1"}},
        {"pnr": ticket.pnr, "status": "CONFIRMED", "ticket_details": ticket.to_dict()},
    ]
    assert [t.pnr for t in rows_to_tickets(rows)] == [ticket.pnr]
