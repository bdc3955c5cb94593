from __future__ import annotations

import logging
from typing import Any, Dict

import requests

from ..config.settings import Settings
from ..errors import AuthError
from ..models.ticket import Identity
from .session import Session, SessionHolder

LOGGER = logging.getLogger(__name__)

SIGNUP_PATH = "/auth/v1/signup"
TOKEN_PATH = "/auth/v1/token"
LOGOUT_PATH = "/auth/v1/logout"


class SupabaseAuth:
    """Email/password auth against a Supabase (GoTrue) backend."""

    def __init__(self, settings: Settings, holder: SessionHolder) -> None:
        self._settings = settings
        self._holder = holder

    def sign_up(self, email: str, password: str, name: str) -> Session | None:
        """Register a new account.

        Returns the new session, or ``None`` when the backend wants the address
        verified first. The holder is only updated when a session is issued.
        """

        payload = {"email": email, "password": password, "data": {"name": name}}
        result = self._post(SIGNUP_PATH, payload)
        if not result.get("access_token"):
            LOGGER.info("Sign-up for %s is pending email verification", email)
            return None
        session = _session_from_payload(result)
        self._holder.set(session)
        return session

    def sign_in(self, email: str, password: str) -> Session:
        payload = {"email": email, "password": password}
        result = self._post(TOKEN_PATH, payload, params={"grant_type": "password"})
        if not result.get("access_token"):
            raise AuthError("Sign-in response did not include a session")
        session = _session_from_payload(result)
        self._holder.set(session)
        return session

    def sign_out(self) -> None:
        token = self._holder.access_token
        if token and self._settings.auth_enabled:
            try:
                response = requests.post(
                    self._settings.supabase_endpoint(LOGOUT_PATH),
                    headers=self._headers(token),
                    timeout=self._settings.request_timeout_seconds,
                )
                if response.status_code >= 400:
                    LOGGER.warning("Remote sign-out failed: %s | %s", response.status_code, response.text)
            except requests.RequestException as exc:
                LOGGER.warning("Remote sign-out failed: %s", exc)
        self._holder.clear()

    def _headers(self, token: str | None = None) -> Dict[str, str]:
        headers = {"apikey": self._settings.supabase_anon_key or "", "Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _post(self, path: str, payload: Dict[str, Any], *, params: Dict[str, str] | None = None) -> Dict[str, Any]:
        if not self._settings.auth_enabled:
            raise AuthError("Authentication backend is not configured")
        try:
            response = requests.post(
                self._settings.supabase_endpoint(path),
                json=payload,
                params=params,
                headers=self._headers(),
                timeout=self._settings.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            LOGGER.error("Auth request to %s failed: %s", path, exc)
            raise AuthError("Could not reach the authentication service") from exc

        if response.status_code >= 400:
            message = _error_message(response)
            LOGGER.warning("Auth request to %s rejected: %s | %s", path, response.status_code, message)
            raise AuthError(message)
        return response.json()


def _session_from_payload(payload: Dict[str, Any]) -> Session:
    user = payload.get("user") or {}
    if not user.get("id"):
        raise AuthError("Auth response did not include a user")
    return Session(
        identity=Identity.from_user(user),
        access_token=payload["access_token"],
        refresh_token=payload.get("refresh_token"),
    )


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or "An error occurred during authentication"
    for key in ("error_description", "msg", "message", "error"):
        if isinstance(body, dict) and body.get(key):
            return str(body[key])
    return "An error occurred during authentication"
