import asyncio

import pytest

from railconnect.booking import PaymentMethod, PaymentSimulator
from railconnect.errors import AuthError, BookingValidationError, InvalidTransition, StoreError, TicketStateError
from railconnect.flow import ViewState
from railconnect.models import BookingStatus
from railconnect.search import FALLBACK_TRAINS


async def _book(controller, *passengers, train_idx=0, class_idx=2):
    await controller.search("New Delhi", "Mumbai Central", "2024-06-15")
    train = controller.results[train_idx]
    draft = controller.select_class(train, train.classes[class_idx])
    for idx, (name, age) in enumerate(passengers or [("Asha", 34)]):
        if idx:
            draft.add_passenger()
        draft.update_passenger(idx, name=name, age=age)
    draft.contact_mobile = "9876543210"
    draft.contact_email = "asha@example.com"
    controller.submit_booking()
    return await controller.pay(PaymentMethod.UPI)


async def test_starts_at_auth_and_sign_in_moves_to_search(controller):
    assert controller.state is ViewState.AUTH
    identity = await controller.sign_in("alice@example.com", "secret")
    assert identity.name == "Alice"
    assert controller.state is ViewState.SEARCH


async def test_auth_error_stays_on_auth(controller):
    with pytest.raises(AuthError):
        await controller.sign_in("alice@example.com", "wrong")
    assert controller.state is ViewState.AUTH


async def test_pending_sign_up_stays_on_auth(controller):
    controller._auth.pending_verification = True
    assert await controller.sign_up("new@example.com", "secret", "Newbie") is None
    assert controller.state is ViewState.AUTH


async def test_actions_need_a_session(controller):
    with pytest.raises(InvalidTransition):
        await controller.search("New Delhi", "Mumbai Central", "2024-06-15")
    with pytest.raises(InvalidTransition):
        await controller.load_history()


async def test_full_booking_flow(signed_in, store, searcher):
    ticket = await _book(signed_in, ("Asha", 34), ("Ravi", 36))

    assert signed_in.state is ViewState.TICKET
    assert signed_in.current_ticket is ticket
    assert ticket.total_amount == 3800
    assert ticket.status is BookingStatus.CONFIRMED
    assert ticket.synced is True
    assert ticket.pnr in store.rows
    assert searcher.calls == [("New Delhi", "Mumbai Central", "2024-06-15")]
    assert {p.email for p in ticket.passengers} == {"asha@example.com"}

    signed_in.go_home()
    assert signed_in.state is ViewState.SEARCH
    assert signed_in.current_ticket is None


async def test_empty_search_field_does_not_leave_search(signed_in, searcher):
    with pytest.raises(BookingValidationError):
        await signed_in.search("", "Mumbai Central", "2024-06-15")
    assert signed_in.state is ViewState.SEARCH
    assert searcher.calls == []


async def test_new_search_replaces_results(signed_in):
    await signed_in.search("New Delhi", "Mumbai Central", "2024-06-15")
    signed_in.modify_search()
    assert signed_in.state is ViewState.SEARCH
    await signed_in.search("Pune", "Goa", "2024-07-01")
    assert len(signed_in.results) == 3
    assert signed_in.travel_date == "2024-07-01"


async def test_closed_waitlist_cannot_be_selected(signed_in):
    await signed_in.search("New Delhi", "Mumbai Central", "2024-06-15")
    golden_temple = signed_in.results[1]
    with pytest.raises(BookingValidationError):
        signed_in.select_class(golden_temple, golden_temple.classes[1])
    assert signed_in.state is ViewState.RESULTS
    signed_in.select_class(golden_temple, golden_temple.classes[0])
    assert signed_in.state is ViewState.BOOKING


async def test_zero_age_never_reaches_payment(signed_in):
    await signed_in.search("New Delhi", "Mumbai Central", "2024-06-15")
    train = signed_in.results[0]
    draft = signed_in.select_class(train, train.classes[0])
    draft.update_passenger(0, name="Asha", age=0)
    draft.contact_mobile = "9876543210"
    draft.contact_email = "asha@example.com"
    with pytest.raises(BookingValidationError):
        signed_in.submit_booking()
    assert signed_in.state is ViewState.BOOKING


async def test_back_navigation(signed_in):
    await signed_in.search("New Delhi", "Mumbai Central", "2024-06-15")
    train = signed_in.results[0]
    draft = signed_in.select_class(train, train.classes[0])
    signed_in.back_to_results()
    assert signed_in.state is ViewState.RESULTS
    draft = signed_in.select_class(train, train.classes[0])
    draft.update_passenger(0, name="Asha", age=34)
    draft.contact_mobile, draft.contact_email = "9876543210", "asha@example.com"
    signed_in.submit_booking()
    assert signed_in.payable_amount == 4500
    signed_in.back_to_booking()
    assert signed_in.state is ViewState.BOOKING


async def test_wrong_state_is_rejected(signed_in):
    with pytest.raises(InvalidTransition):
        signed_in.submit_booking()
    with pytest.raises(InvalidTransition):
        await signed_in.pay()
    with pytest.raises(InvalidTransition):
        signed_in.go_home()
    assert signed_in.state is ViewState.SEARCH


async def test_store_failure_on_create_keeps_ticket(signed_in, store):
    store.fail_save = True
    ticket = await _book(signed_in)
    assert signed_in.state is ViewState.TICKET
    assert ticket.status is BookingStatus.CONFIRMED
    assert ticket.synced is False
    assert signed_in.unsynced == [ticket]

    store.fail_save = False
    assert await signed_in.sync_pending() == 1
    assert ticket.synced is True
    assert signed_in.unsynced == []
    assert ticket.pnr in store.rows


async def test_cancel_updates_ticket_and_history(signed_in, store):
    ticket = await _book(signed_in)
    await signed_in.load_history()
    assert [t.pnr for t in signed_in.history] == [ticket.pnr]
    signed_in.open_ticket(ticket.pnr)
    assert signed_in.current_ticket is signed_in.history[0]

    await signed_in.cancel_ticket(ticket.pnr)
    assert signed_in.history[0].status is BookingStatus.CANCELLED
    assert store.rows[ticket.pnr]["status"] == "CANCELLED"
    assert signed_in.history[0].total_amount == 1900


async def test_cancel_twice_is_rejected(signed_in, store):
    ticket = await _book(signed_in)
    await signed_in.cancel_ticket(ticket.pnr)
    with pytest.raises(TicketStateError):
        await signed_in.cancel_ticket(ticket.pnr)
    assert ticket.status is BookingStatus.CANCELLED
    assert store.cancel_calls == 1


async def test_cancel_store_failure_leaves_ticket_confirmed(signed_in, store):
    ticket = await _book(signed_in)
    store.fail_cancel = True
    with pytest.raises(StoreError):
        await signed_in.cancel_ticket(ticket.pnr)
    assert signed_in.current_ticket.status is BookingStatus.CONFIRMED
    assert store.rows[ticket.pnr]["status"] == "CONFIRMED"


async def test_history_reflects_store_status(signed_in, store):
    ticket = await _book(signed_in)
    store.rows[ticket.pnr]["status"] = "CANCELLED"
    assert store.rows[ticket.pnr]["ticket_details"]["bookingStatus"] == "CONFIRMED"
    history = await signed_in.load_history()
    assert signed_in.state is ViewState.HISTORY
    assert history[0].status is BookingStatus.CANCELLED


async def test_history_newest_first(signed_in):
    first = await _book(signed_in)
    signed_in.go_home()
    second = await _book(signed_in, train_idx=2, class_idx=1)
    history = await signed_in.load_history()
    assert [t.pnr for t in history] == [second.pnr, first.pnr]
    signed_in.go_home()
    assert signed_in.state is ViewState.SEARCH


async def test_sign_out_clears_session_state(signed_in):
    await _book(signed_in)
    await signed_in.load_history()
    await signed_in.sign_out()
    assert signed_in.state is ViewState.AUTH
    assert signed_in.identity is None
    assert signed_in.results == []
    assert signed_in.history == []
    assert signed_in.current_ticket is None


async def test_state_listeners_see_every_transition(controller):
    seen = []
    controller.on_state_change(seen.append)
    await controller.sign_in("alice@example.com", "secret")
    await controller.search("New Delhi", "Mumbai Central", "2024-06-15")
    controller.modify_search()
    assert seen == [ViewState.SEARCH, ViewState.RESULTS, ViewState.SEARCH]


class GatedSearcher:
    def __init__(self, offers) -> None:
        self.offers = offers
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def search(self, origin, destination, travel_date):
        self.started.set()
        await self.release.wait()
        return list(self.offers)


async def test_sign_out_during_payment_issues_no_ticket(signed_in, store):
    signed_in._payments = PaymentSimulator(0.2)
    await signed_in.search("New Delhi", "Mumbai Central", "2024-06-15")
    train = signed_in.results[0]
    draft = signed_in.select_class(train, train.classes[2])
    draft.update_passenger(0, name="Asha", age=34)
    draft.contact_mobile, draft.contact_email = "9876543210", "asha@example.com"
    signed_in.submit_booking()

    payment = asyncio.create_task(signed_in.pay(PaymentMethod.UPI))
    await asyncio.sleep(0.01)
    await signed_in.sign_out()
    with pytest.raises(InvalidTransition):
        await payment

    assert signed_in.state is ViewState.AUTH
    assert signed_in.current_ticket is None
    assert signed_in.unsynced == []
    assert store.rows == {}


async def test_sign_out_during_search_discards_results(signed_in):
    searcher = GatedSearcher(FALLBACK_TRAINS)
    signed_in._searcher = searcher
    pending = asyncio.create_task(signed_in.search("New Delhi", "Mumbai Central", "2024-06-15"))
    await searcher.started.wait()
    await signed_in.sign_out()
    searcher.release.set()
    with pytest.raises(InvalidTransition):
        await pending

    assert signed_in.state is ViewState.AUTH
    assert signed_in.results == []
    assert signed_in.is_loading is False


async def test_submit_without_draft_is_a_transition_error(signed_in):
    await signed_in.search("New Delhi", "Mumbai Central", "2024-06-15")
    train = signed_in.results[0]
    signed_in.select_class(train, train.classes[0])
    signed_in.draft = None
    with pytest.raises(InvalidTransition):
        signed_in.submit_booking()
    assert signed_in.state is ViewState.BOOKING
