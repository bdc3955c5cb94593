"""Plain-text rendering for the terminal front end."""

from .text import cancellation_prompt, format_history, format_offer_table, format_price, format_ticket

__all__ = ["cancellation_prompt", "format_history", "format_offer_table", "format_price", "format_ticket"]
