"""The booking view-state machine."""

from .controller import BookingController, ViewState

__all__ = ["BookingController", "ViewState"]
