"""Authentication collaborator interface."""

import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

SessionCallback = Callable[[str, Optional["AuthSession"]], Any]


@dataclass
class AuthSession:
    user_id: str
    email: str
    access_token: str
    expires_at: Optional[datetime] = None


class AuthProvider(ABC):
    """Sign-up/sign-in/sign-out plus session-change notification.

    Callbacks receive `(event, session)`; they may be plain functions or
    coroutines.
    """

    def __init__(self):
        self._current: Optional[AuthSession] = None
        self._subscribers: List[SessionCallback] = []

    def subscribe(self, callback: SessionCallback) -> Callable[[], None]:
        """Register for session changes; returns a function that unsubscribes."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def _emit(self, event: str, session: Optional[AuthSession]) -> None:
        logger.info(f"Auth event {event} for {session.email if session else 'anonymous'}")
        for callback in list(self._subscribers):
            result = callback(event, session)
            if inspect.isawaitable(result):
                await result

    async def _signed_in(self, session: AuthSession) -> AuthSession:
        self._current = session
        await self._emit(SIGNED_IN, session)
        return session

    @abstractmethod
    async def get_session(self, access_token: Optional[str] = None) -> Optional[AuthSession]:
        """Session for a token, or the current session when no token is given."""

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> AuthSession:
        """Create an account and sign it in."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Exchange credentials for a session."""

    @abstractmethod
    async def sign_out(self, access_token: Optional[str] = None) -> None:
        """End a session (the current one when no token is given)."""

    async def close(self) -> None:
        """Release connections."""
