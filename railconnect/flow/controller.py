from __future__ import annotations

import asyncio
import enum
import logging
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from ..auth.session import Session, SessionHolder
from ..booking.draft import BookingDraft
from ..booking.payment import PaymentMethod, PaymentReceipt, PaymentSimulator
from ..booking.tickets import create_ticket
from ..config.settings import Settings
from ..errors import BookingValidationError, InvalidTransition, TicketStateError
from ..models.ticket import FareClass, Identity, Passenger, Ticket, TrainOffer
from ..search.validation import validate_search

LOGGER = logging.getLogger(__name__)


class ViewState(str, enum.Enum):
    AUTH = "AUTH"
    SEARCH = "SEARCH"
    RESULTS = "RESULTS"
    BOOKING = "BOOKING"
    PAYMENT = "PAYMENT"
    TICKET = "TICKET"
    HISTORY = "HISTORY"


class AuthBackend(Protocol):
    def sign_in(self, email: str, password: str) -> Session: ...

    def sign_up(self, email: str, password: str, name: str) -> Session | None: ...

    def sign_out(self) -> None: ...


class TicketStore(Protocol):
    def save_booking(self, user_id: str, ticket: Ticket) -> bool: ...

    def cancel_booking(self, pnr: str) -> object: ...

    def list_bookings(self, user_id: str) -> List[Ticket]: ...


class TrainSearcher(Protocol):
    def search(self, origin: str, destination: str, travel_date: str) -> Awaitable[List[TrainOffer]]: ...


class BookingController:
    """The booking flow as a single-state machine.

    One view is active at a time. Every action checks the current view and
    raises ``InvalidTransition`` when called from the wrong one. Identity
    changes arrive through the session holder subscription: a new identity
    moves AUTH to SEARCH, and ``None`` resets everything back to AUTH.
    """

    def __init__(
        self,
        settings: Settings,
        holder: SessionHolder,
        auth: AuthBackend,
        store: TicketStore,
        searcher: TrainSearcher,
        payments: PaymentSimulator | None = None,
    ) -> None:
        self.settings = settings
        self._holder = holder
        self._auth = auth
        self._store = store
        self._searcher = searcher
        self._payments = payments or PaymentSimulator(settings.payment_delay_seconds)

        self.state = ViewState.AUTH
        self.origin = settings.default_origin
        self.destination = settings.default_destination
        self.travel_date = settings.default_travel_date.isoformat()
        self.results: List[TrainOffer] = []
        self.is_loading = False
        self.draft: BookingDraft | None = None
        self.passengers: tuple[Passenger, ...] = ()
        self.current_ticket: Ticket | None = None
        self.history: List[Ticket] = []
        self.unsynced: List[Ticket] = []
        self._listeners: List[Callable[[ViewState], None]] = []

        self._unsubscribe = holder.subscribe(self._on_identity_change)
        if holder.identity is not None:
            self._set_state(ViewState.SEARCH)

    @property
    def identity(self) -> Identity | None:
        return self._holder.identity

    @property
    def payable_amount(self) -> int:
        if self.draft is None:
            return 0
        return self.draft.selected_class.price * len(self.passengers)

    @property
    def payment_processing(self) -> bool:
        return self._payments.processing

    def on_state_change(self, listener: Callable[[ViewState], None]) -> None:
        self._listeners.append(listener)

    def close(self) -> None:
        self._unsubscribe()

    # auth

    async def sign_in(self, email: str, password: str) -> Identity:
        self._require(ViewState.AUTH)
        session = await asyncio.to_thread(self._auth.sign_in, email, password)
        return session.identity

    async def sign_up(self, email: str, password: str, name: str) -> Optional[Identity]:
        """Returns the new identity, or None while email verification is pending."""

        self._require(ViewState.AUTH)
        session = await asyncio.to_thread(self._auth.sign_up, email, password, name)
        return session.identity if session else None

    async def sign_out(self) -> None:
        await asyncio.to_thread(self._auth.sign_out)
        self._reset()

    # search

    async def search(self, origin: str, destination: str, travel_date: str) -> List[TrainOffer]:
        self._require(ViewState.SEARCH)
        identity = self.identity
        origin, destination, travel_date = validate_search(origin, destination, travel_date)
        self.origin, self.destination, self.travel_date = origin, destination, travel_date
        self.results = []
        self._set_state(ViewState.RESULTS)
        self.is_loading = True
        try:
            offers = list(await self._searcher.search(origin, destination, travel_date))
        finally:
            self.is_loading = False
        self._ensure_still(ViewState.RESULTS, identity)
        self.results = offers
        return self.results

    def modify_search(self) -> None:
        self._require(ViewState.RESULTS)
        self._set_state(ViewState.SEARCH)

    # booking

    def select_class(self, train: TrainOffer, fare: FareClass) -> BookingDraft:
        self._require(ViewState.RESULTS)
        if not fare.is_selectable:
            raise BookingValidationError(f"{fare.type.value} on {train.number} is waitlisted with no capacity")
        self.draft = BookingDraft(
            train=train,
            selected_class=fare,
            travel_date=self.travel_date,
            max_passengers=self.settings.max_passengers,
        )
        self.passengers = ()
        self._set_state(ViewState.BOOKING)
        return self.draft

    def back_to_results(self) -> None:
        self._require(ViewState.BOOKING)
        self._set_state(ViewState.RESULTS)

    def submit_booking(self) -> Sequence[Passenger]:
        self._require(ViewState.BOOKING)
        if self.draft is None:
            raise InvalidTransition("No booking in progress")
        self.passengers = self.draft.submit()
        self._set_state(ViewState.PAYMENT)
        return self.passengers

    def back_to_booking(self) -> None:
        self._require(ViewState.PAYMENT)
        if self._payments.processing:
            raise InvalidTransition("Payment is being processed")
        self._set_state(ViewState.BOOKING)

    async def pay(self, method: PaymentMethod = PaymentMethod.QR) -> Ticket:
        self._require(ViewState.PAYMENT)
        if self._payments.processing:
            raise InvalidTransition("Payment is already being processed")
        identity = self.identity
        draft, passengers = self.draft, self.passengers
        if draft is None or not passengers or identity is None:
            raise InvalidTransition("Nothing to pay for")

        receipt: PaymentReceipt = await self._payments.pay(self.payable_amount, method)
        self._ensure_still(ViewState.PAYMENT, identity)
        ticket = create_ticket(
            draft.train,
            draft.selected_class,
            passengers,
            draft.travel_date,
            now=receipt.paid_at,
        )
        ticket.synced = await asyncio.to_thread(self._store.save_booking, identity.id, ticket)
        self._ensure_still(ViewState.PAYMENT, identity)
        if not ticket.synced:
            LOGGER.warning("Ticket %s not stored; showing local copy", ticket.pnr)
            self.unsynced.append(ticket)

        self.current_ticket = ticket
        self.draft = None
        self.passengers = ()
        self._set_state(ViewState.TICKET)
        return ticket

    # tickets

    async def cancel_ticket(self, pnr: str) -> Ticket:
        """Cancel ``pnr`` in the store, then locally.

        A store failure propagates and leaves every local copy untouched.
        """

        self._require(ViewState.TICKET)
        ticket = self._find_ticket(pnr)
        if ticket is None:
            raise TicketStateError(f"Unknown ticket {pnr}")
        if ticket.is_cancelled:
            raise TicketStateError(f"Ticket {pnr} is already cancelled")

        await asyncio.to_thread(self._store.cancel_booking, pnr)

        for candidate in [self.current_ticket, *self.history]:
            if candidate is not None and candidate.pnr == pnr and not candidate.is_cancelled:
                candidate.cancel()
        LOGGER.info("Ticket %s cancelled", pnr)
        return ticket

    async def load_history(self) -> List[Ticket]:
        identity = self.identity
        if identity is None:
            raise InvalidTransition("Sign in to see your bookings")
        if self._payments.processing:
            raise InvalidTransition("Payment is being processed")
        self._set_state(ViewState.HISTORY)
        self.is_loading = True
        try:
            tickets = list(await asyncio.to_thread(self._store.list_bookings, identity.id))
        finally:
            self.is_loading = False
        self._ensure_still(ViewState.HISTORY, identity)
        self.history = tickets
        return self.history

    def open_ticket(self, pnr: str) -> Ticket:
        self._require(ViewState.HISTORY)
        for ticket in self.history:
            if ticket.pnr == pnr:
                self.current_ticket = ticket
                self._set_state(ViewState.TICKET)
                return ticket
        raise TicketStateError(f"Unknown ticket {pnr}")

    def go_home(self) -> None:
        self._require(ViewState.TICKET, ViewState.HISTORY)
        self.current_ticket = None
        self._set_state(ViewState.SEARCH)

    async def sync_pending(self) -> int:
        """Retry the store write once for each ticket that never reached it."""

        identity = self.identity
        if identity is None:
            raise InvalidTransition("Sign in to sync bookings")
        synced = 0
        for ticket in list(self.unsynced):
            saved = await asyncio.to_thread(self._store.save_booking, identity.id, ticket)
            if self.identity != identity:
                raise InvalidTransition("Signed out while syncing")
            if saved:
                ticket.synced = True
                self.unsynced.remove(ticket)
                synced += 1
        LOGGER.info("Synced %d of %d pending tickets", synced, synced + len(self.unsynced))
        return synced

    # internals

    def _find_ticket(self, pnr: str) -> Ticket | None:
        if self.current_ticket is not None and self.current_ticket.pnr == pnr:
            return self.current_ticket
        return next((ticket for ticket in self.history if ticket.pnr == pnr), None)

    def _ensure_still(self, state: ViewState, identity: Identity | None) -> None:
        # Sign-out or another action may have run while an await was pending.
        if self.state is not state or self.identity != identity:
            raise InvalidTransition(f"View changed to {self.state.value} while waiting")

    def _require(self, *states: ViewState) -> None:
        if self.state not in states:
            allowed = ", ".join(state.value for state in states)
            raise InvalidTransition(f"Action not allowed from {self.state.value} (needs {allowed})")
        if self.state is not ViewState.AUTH and self.identity is None:
            raise InvalidTransition("Not signed in")

    def _set_state(self, state: ViewState) -> None:
        if state is self.state:
            return
        LOGGER.debug("View %s -> %s", self.state.value, state.value)
        self.state = state
        for listener in list(self._listeners):
            listener(state)

    def _on_identity_change(self, identity: Identity | None) -> None:
        if identity is None:
            self._reset()
        elif self.state is ViewState.AUTH:
            self._set_state(ViewState.SEARCH)

    def _reset(self) -> None:
        self.results = []
        self.history = []
        self.draft = None
        self.passengers = ()
        self.current_ticket = None
        self.unsynced = []
        self.is_loading = False
        self._set_state(ViewState.AUTH)
