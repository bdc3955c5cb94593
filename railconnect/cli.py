from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
from pathlib import Path

from .auth import SessionHolder, SupabaseAuth
from .booking import PaymentMethod, PaymentSimulator, upi_payment_uri
from .config import Settings, load_settings
from .display import cancellation_prompt, format_history, format_offer_table, format_price, format_ticket
from .errors import AuthError, BookingValidationError, InvalidTransition, StoreError, TicketStateError
from .flow import BookingController, ViewState
from .models import Gender
from .search import TrainSearch
from .storage import BookingStore

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="railconnect command-line interface")
    parser.add_argument("--env-file", type=Path, default=None, help="Optional .env file to load")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (INFO, DEBUG, ...)")
    subparsers = parser.add_subparsers(dest="command", required=True)
    search_parser = subparsers.add_parser("search", help="Search trains and print the results")
    search_parser.add_argument("origin")
    search_parser.add_argument("destination")
    search_parser.add_argument("date", help="Travel date (YYYY-MM-DD)")
    subparsers.add_parser("book", help="Interactive booking session")
    subparsers.add_parser("history", help="Sign in and list your bookings")
    return parser


def build_controller(settings: Settings) -> BookingController:
    holder = SessionHolder()
    return BookingController(
        settings,
        holder,
        auth=SupabaseAuth(settings, holder),
        store=BookingStore(settings, holder),
        searcher=TrainSearch(settings),
        payments=PaymentSimulator(settings.payment_delay_seconds),
    )


async def run_search(settings: Settings, origin: str, destination: str, travel_date: str) -> None:
    try:
        offers = await TrainSearch(settings).search(origin, destination, travel_date)
    except BookingValidationError as exc:
        print(f"! {exc}")
        return
    print(format_offer_table(offers, settings.currency))


async def run_history(settings: Settings) -> None:
    controller = build_controller(settings)
    try:
        await _auth_screen(controller)
    except AuthError as exc:
        print(f"! {exc}")
    if controller.identity is None:
        return
    tickets = await controller.load_history()
    print(format_history(tickets, settings.currency))
    await controller.sign_out()


async def run_booking_session(settings: Settings) -> None:
    controller = build_controller(settings)
    screens = {
        ViewState.AUTH: _auth_screen,
        ViewState.SEARCH: _search_screen,
        ViewState.RESULTS: _results_screen,
        ViewState.BOOKING: _booking_screen,
        ViewState.PAYMENT: _payment_screen,
        ViewState.TICKET: _ticket_screen,
        ViewState.HISTORY: _history_screen,
    }
    try:
        while True:
            try:
                if not await screens[controller.state](controller):
                    break
            except (ValueError, AuthError, StoreError, InvalidTransition, TicketStateError) as exc:
                print(f"! {exc}")
    finally:
        controller.close()


async def _auth_screen(controller: BookingController) -> bool:
    choice = _ask("[s]ign in, sign [u]p or [q]uit", "s").lower()
    if choice == "q":
        return False
    email = _ask("Email")
    password = getpass.getpass("Password: ")
    if choice == "u":
        name = _ask("Full name")
        identity = await controller.sign_up(email, password, name)
        if identity is None:
            print(f"We've sent a confirmation link to {email}. Verify your account, then sign in.")
        return True
    identity = await controller.sign_in(email, password)
    print(f"Welcome back, {identity.name}!")
    return True


async def _search_screen(controller: BookingController) -> bool:
    command = _ask("[f]ind trains, [h]istory, [o]ut (sign out) or [q]uit", "f").lower()
    if command == "q":
        return False
    if command == "o":
        await controller.sign_out()
        return True
    if command == "h":
        await controller.load_history()
        return True
    origin = _ask("From", controller.origin)
    destination = _ask("To", controller.destination)
    travel_date = _ask("Date (YYYY-MM-DD)", controller.travel_date)
    print("Searching...")
    await controller.search(origin, destination, travel_date)
    return True


async def _results_screen(controller: BookingController) -> bool:
    print(f"\n{controller.origin} -> {controller.destination} on {controller.travel_date}")
    print(format_offer_table(controller.results, controller.settings.currency))
    choice = _ask("Pick a class as TRAIN.CLASS (e.g. 1.2), [m]odify search or [h]istory", "m").lower()
    if choice == "m":
        controller.modify_search()
        return True
    if choice == "h":
        await controller.load_history()
        return True
    try:
        train_no, class_no = (int(part) for part in choice.split(".", 1))
        if train_no < 1 or class_no < 1:
            raise IndexError(choice)
        train = controller.results[train_no - 1]
        fare = train.classes[class_no - 1]
    except (ValueError, IndexError):
        print(f"! Unknown choice {choice!r}")
        return True
    controller.select_class(train, fare)
    return True


async def _booking_screen(controller: BookingController) -> bool:
    draft = controller.draft
    if draft is None:
        raise InvalidTransition("No booking in progress")
    print(f"\n{draft.train.short_label()} | {draft.selected_class.type.value} | {draft.travel_date}")
    count = int(_ask(f"Number of passengers (1-{draft.max_passengers})", str(len(draft.entries))))
    while len(draft.entries) < count:
        draft.add_passenger()
    while len(draft.entries) > max(count, 1):
        draft.remove_passenger(len(draft.entries) - 1)
    for idx in range(len(draft.entries)):
        print(f"Passenger {idx + 1}")
        name = _ask("  Name", draft.entries[idx].name)
        age_raw = _ask("  Age", str(draft.entries[idx].age or ""))
        gender = _ask("  Gender (Male/Female/Other)", draft.entries[idx].gender.value).capitalize()
        draft.update_passenger(idx, name=name, age=int(age_raw) if age_raw.isdigit() else 0, gender=Gender(gender))
    draft.contact_mobile = _ask("Contact mobile", draft.contact_mobile)
    draft.contact_email = _ask("Contact email", draft.contact_email)
    print(f"Total fare: {format_price(draft.fare_total, controller.settings.currency)}")
    if _ask("[p]roceed to payment or [b]ack", "p").lower() == "b":
        controller.back_to_results()
        return True
    controller.submit_booking()
    return True


async def _payment_screen(controller: BookingController) -> bool:
    amount = controller.payable_amount
    print(f"\nAmount payable: {format_price(amount, controller.settings.currency)}")
    choice = _ask("Pay with [QR], [UPI], [CARD] or [b]ack", "QR").upper()
    if choice == "B":
        controller.back_to_booking()
        return True
    method = PaymentMethod(choice)
    if method is PaymentMethod.QR:
        print(f"Scan to pay: {upi_payment_uri(amount, controller.settings.currency)}")
    print("Processing payment...")
    ticket = await controller.pay(method)
    print(format_ticket(ticket, controller.settings.currency))
    return True


async def _ticket_screen(controller: BookingController) -> bool:
    ticket = controller.current_ticket
    if ticket is None:
        raise InvalidTransition("No ticket to show")
    options = "[h]ome, [l]ist bookings"
    if not ticket.is_cancelled:
        options += ", [c]ancel ticket"
    if controller.unsynced:
        options += ", [s]ync pending"
    command = _ask(options, "h").lower()
    if command == "c" and not ticket.is_cancelled:
        print(cancellation_prompt(controller.settings.cancellation_fee, controller.settings.currency))
        if _ask("Cancel? [y/N]", "n").lower() == "y":
            try:
                await controller.cancel_ticket(ticket.pnr)
            except StoreError as exc:
                LOGGER.debug("Cancellation failed: %s", exc)
                print("! Failed to cancel ticket. Please try again.")
            print(format_ticket(ticket, controller.settings.currency))
    elif command == "l":
        await controller.load_history()
    elif command == "s":
        synced = await controller.sync_pending()
        print(f"Saved {synced} pending ticket(s).")
    else:
        controller.go_home()
    return True


async def _history_screen(controller: BookingController) -> bool:
    print(format_history(controller.history, controller.settings.currency))
    pnr = _ask("PNR to open (blank for home)", "")
    if not pnr:
        controller.go_home()
        return True
    ticket = controller.open_ticket(pnr)
    print(format_ticket(ticket, controller.settings.currency))
    return True


def _ask(prompt: str, default: str | None = None) -> str:
    suffix = f" [{default}]" if default else ""
    value = input(f"{prompt}{suffix}: ").strip()
    return value or (default or "")


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    settings = load_settings(env_file=args.env_file)

    if args.command == "search":
        asyncio.run(run_search(settings, args.origin, args.destination, args.date))
    elif args.command == "book":
        asyncio.run(run_booking_session(settings))
    elif args.command == "history":
        asyncio.run(run_history(settings))
    else:  # pragma: no cover - argparse enforces valid commands
        parser.error("Unknown command")


if __name__ == "__main__":
    main()
