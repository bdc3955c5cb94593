"""Railway ticket booking demo: search, book, pay, cancel and list e-tickets."""

from .config import Settings, load_settings
from .flow import BookingController, ViewState

__version__ = "0.1.0"

__all__ = ["BookingController", "Settings", "ViewState", "load_settings", "__version__"]
