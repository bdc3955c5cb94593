from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

_DATE_FMT = "%Y-%m-%d"


def _parse_int(value: str | None, default: int | None = None) -> int | None:
    if value is None or value.strip() == "":
        return default
    return int(value)


def _parse_float(value: str | None, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    return float(value)


def _parse_date(value: str) -> date:
    return datetime.strptime(value, _DATE_FMT).date()


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(slots=True)
class Settings:
    """Aggregated runtime configuration."""

    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_train_count: int = 5
    request_timeout_seconds: float = 15.0
    payment_delay_seconds: float = 2.5
    fallback_delay_seconds: float = 1.5
    cancellation_fee: int = 240
    currency: str = "INR"
    default_origin: str = "New Delhi"
    default_destination: str = "Mumbai Central"
    default_travel_date: date = date(2024, 6, 15)
    max_passengers: int = 6

    @property
    def auth_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def store_enabled(self) -> bool:
        return self.auth_enabled

    @property
    def search_enabled(self) -> bool:
        return bool(self.gemini_api_key)

    def supabase_endpoint(self, path: str) -> str:
        if not self.supabase_url:
            raise ValueError("SUPABASE_URL is not configured")
        return f"{self.supabase_url.rstrip('/')}/{path.lstrip('/')}"


def load_settings(env_file: str | Path | None = None) -> Settings:
    """Load configuration from environment variables and an optional .env file."""

    if env_file:
        path = Path(env_file).expanduser().resolve()
        if not path.exists():
            raise ValueError(f"Env file not found: {path}")
        load_dotenv(path, override=True)

    max_passengers = _parse_int(os.getenv("MAX_PASSENGERS"), default=6) or 6
    if not 1 <= max_passengers <= 6:
        raise ValueError("MAX_PASSENGERS must be between 1 and 6")

    travel_date_raw = _clean(os.getenv("DEFAULT_TRAVEL_DATE"))

    return Settings(
        supabase_url=_clean(os.getenv("SUPABASE_URL")),
        supabase_anon_key=_clean(os.getenv("SUPABASE_ANON_KEY")),
        gemini_api_key=_clean(os.getenv("GEMINI_API_KEY")) or _clean(os.getenv("API_KEY")),
        gemini_model=_clean(os.getenv("GEMINI_MODEL")) or "gemini-2.5-flash",
        gemini_train_count=_parse_int(os.getenv("GEMINI_TRAIN_COUNT"), default=5) or 5,
        request_timeout_seconds=_parse_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 15.0),
        payment_delay_seconds=_parse_float(os.getenv("PAYMENT_DELAY_SECONDS"), 2.5),
        fallback_delay_seconds=_parse_float(os.getenv("FALLBACK_DELAY_SECONDS"), 1.5),
        cancellation_fee=_parse_int(os.getenv("CANCELLATION_FEE"), default=240),
        currency=os.getenv("CURRENCY", "INR"),
        default_origin=os.getenv("DEFAULT_ORIGIN", "New Delhi"),
        default_destination=os.getenv("DEFAULT_DESTINATION", "Mumbai Central"),
        default_travel_date=_parse_date(travel_date_raw) if travel_date_raw else date(2024, 6, 15),
        max_passengers=max_passengers,
    )
