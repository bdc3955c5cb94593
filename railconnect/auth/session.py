from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, List, Optional

from ..models.ticket import Identity

LOGGER = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[Identity]], None]


@dataclass(slots=True, frozen=True)
class Session:
    identity: Identity
    access_token: str
    refresh_token: str | None = None


class SessionHolder:
    """In-memory holder for the current session.

    Every change is pushed to subscribers as the new ``Identity`` (or ``None``
    after sign-out). Nothing is persisted between runs.
    """

    def __init__(self) -> None:
        self._session: Session | None = None
        self._listeners: List[IdentityListener] = []

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def identity(self) -> Identity | None:
        return self._session.identity if self._session else None

    @property
    def access_token(self) -> str | None:
        return self._session.access_token if self._session else None

    def set(self, session: Session) -> None:
        self._session = session
        LOGGER.info("Signed in as %s", session.identity.email)
        self._notify(session.identity)

    def clear(self) -> None:
        had_session = self._session is not None
        self._session = None
        if had_session:
            LOGGER.info("Session cleared")
        self._notify(None)

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, identity: Identity | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(identity)
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("Session listener failed: %s", exc)
