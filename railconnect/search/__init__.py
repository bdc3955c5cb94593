"""Train search: generator client, static fallback and payload validation."""

from .fallback import FALLBACK_TRAINS
from .gemini import TrainSearch
from .validation import parse_train_offers, validate_search

__all__ = ["FALLBACK_TRAINS", "TrainSearch", "parse_train_offers", "validate_search"]
