"""Exceptions raised across the booking flow."""


class RailConnectError(Exception):
    """Base class for every error raised by railconnect."""


class BookingValidationError(RailConnectError, ValueError):
    """User input failed validation; the current view does not change."""


class AuthError(RailConnectError):
    """The auth backend rejected a request. The message is user-facing."""


class StoreError(RailConnectError):
    """The booking store could not complete a request."""


class InvalidTransition(RailConnectError):
    """An action was requested from a view that does not allow it."""


class TicketStateError(RailConnectError):
    """A ticket cannot move to the requested status."""
