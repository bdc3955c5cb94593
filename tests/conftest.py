from __future__ import annotations

from typing import Any, Dict, List

import pytest

from railconnect.auth import Session, SessionHolder
from railconnect.booking import PaymentSimulator
from railconnect.config import Settings
from railconnect.errors import AuthError, StoreError
from railconnect.flow import BookingController
from railconnect.models import Identity, Ticket
from railconnect.search import FALLBACK_TRAINS

ALICE = Identity(id="user-1", email="alice@example.com", name="Alice")


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeAuth:
    def __init__(self, holder: SessionHolder) -> None:
        self.holder = holder
        self.pending_verification = False

    def sign_in(self, email: str, password: str) -> Session:
        if password != "secret":
            raise AuthError("Invalid login credentials")
        session = Session(identity=ALICE, access_token="token-1")
        self.holder.set(session)
        return session

    def sign_up(self, email: str, password: str, name: str) -> Session | None:
        if self.pending_verification:
            return None
        session = Session(identity=Identity(id="user-2", email=email, name=name), access_token="token-2")
        self.holder.set(session)
        return session

    def sign_out(self) -> None:
        self.holder.clear()


class FakeStore:
    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.fail_save = False
        self.fail_cancel = False
        self.save_calls = 0
        self.cancel_calls = 0

    def save_booking(self, user_id: str, ticket: Ticket) -> bool:
        self.save_calls += 1
        if self.fail_save:
            return False
        self.rows[ticket.pnr] = {"user_id": user_id, "status": ticket.status.value, "ticket_details": ticket.to_dict()}
        return True

    def cancel_booking(self, pnr: str) -> Dict[str, Any]:
        self.cancel_calls += 1
        if self.fail_cancel or pnr not in self.rows:
            raise StoreError(f"No booking found for PNR {pnr}")
        self.rows[pnr]["status"] = "CANCELLED"
        return self.rows[pnr]

    def list_bookings(self, user_id: str) -> List[Ticket]:
        tickets = []
        for row in reversed(list(self.rows.values())):
            if row["user_id"] != user_id:
                continue
            details = dict(row["ticket_details"], bookingStatus=row["status"])
            tickets.append(Ticket.from_dict(details))
        return tickets


class FakeSearcher:
    def __init__(self) -> None:
        self.calls: List[tuple[str, str, str]] = []

    async def search(self, origin: str, destination: str, travel_date: str):
        self.calls.append((origin, destination, travel_date))
        return list(FALLBACK_TRAINS)


@pytest.fixture
def settings() -> Settings:
    return Settings(payment_delay_seconds=0, fallback_delay_seconds=0)


@pytest.fixture
def store_settings() -> Settings:
    return Settings(
        supabase_url="https://demo.supabase.co",
        supabase_anon_key="anon-key",
        payment_delay_seconds=0,
        fallback_delay_seconds=0,
        request_timeout_seconds=5,
    )


@pytest.fixture
def holder() -> SessionHolder:
    return SessionHolder()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def searcher() -> FakeSearcher:
    return FakeSearcher()


@pytest.fixture
def controller(settings: Settings, holder: SessionHolder, store: FakeStore, searcher: FakeSearcher) -> BookingController:
    return BookingController(
        settings,
        holder,
        auth=FakeAuth(holder),
        store=store,
        searcher=searcher,
        payments=PaymentSimulator(0),
    )


@pytest.fixture
async def signed_in(controller: BookingController) -> BookingController:
    await controller.sign_in(ALICE.email, "secret")
    return controller
