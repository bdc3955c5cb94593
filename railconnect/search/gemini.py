from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List

import requests

from ..config.settings import Settings
from ..models.ticket import TrainOffer
from .fallback import FALLBACK_TRAINS
from .validation import parse_train_offers, response_schema, validate_search

LOGGER = logging.getLogger(__name__)
API_BASE = "https://generativelanguage.googleapis.com/v1beta"

PROMPT_TEMPLATE = (
    "Generate a list of {count} realistic trains traveling from {origin} to {destination} on {date}. "
    "Include a mix of express and local trains. "
    "For each train, provide realistic availability for different classes "
    "(Sleeper, AC 3 Tier, AC 2 Tier, AC 1 Tier). "
    "Ensure prices are in INR."
)


class TrainSearch:
    """Train search backed by the Gemini generator, with a static fallback.

    Results are advisory: they are generated, never checked against a real
    timetable. Any upstream failure returns ``FALLBACK_TRAINS`` instead of an
    error, and the caller cannot tell the two apart.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def search(self, origin: str, destination: str, travel_date: str) -> List[TrainOffer]:
        origin, destination, travel_date = validate_search(origin, destination, travel_date)

        if not self._settings.search_enabled:
            LOGGER.warning("GEMINI_API_KEY not set; using fallback trains")
            await asyncio.sleep(self._settings.fallback_delay_seconds)
            return list(FALLBACK_TRAINS)

        try:
            offers = await asyncio.to_thread(self.generate, origin, destination, travel_date)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Train generator failed, using fallback trains: %s", exc)
            return list(FALLBACK_TRAINS)

        if not offers:
            LOGGER.warning("Train generator returned no usable trains; using fallback trains")
            return list(FALLBACK_TRAINS)

        LOGGER.info("Generated %d trains for %s -> %s on %s", len(offers), origin, destination, travel_date)
        return offers

    def generate(self, origin: str, destination: str, travel_date: str) -> List[TrainOffer]:
        """Call the generator once and return the validated offers."""

        url = f"{API_BASE}/models/{self._settings.gemini_model}:generateContent"
        prompt = PROMPT_TEMPLATE.format(
            count=self._settings.gemini_train_count,
            origin=origin,
            destination=destination,
            date=travel_date,
        )
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": response_schema(),
            },
        }
        response = requests.post(
            url,
            params={"key": self._settings.gemini_api_key},
            json=body,
            timeout=self._settings.request_timeout_seconds,
        )
        if response.status_code >= 400:
            raise RuntimeError(f"Gemini request failed: {response.status_code} | {response.text[:200]}")

        text = _response_text(response.json())
        if not text:
            return []
        return parse_train_offers(json.loads(text))


def _response_text(payload: Dict[str, Any]) -> str:
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts).strip()
