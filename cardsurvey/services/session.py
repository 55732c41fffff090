"""Client session context with current-user change notifications."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from cardsurvey.models.user import User
from cardsurvey.services.auth_service import AuthService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """Snapshot of the signed-in user handed to subscribers."""

    id: UUID
    email: str
    name: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "SessionUser":
        return cls(
            id=user.user_id,
            email=user.email or "",
            name=user.display_name or None,
            avatar_url=user.photo_url or None,
        )


UserListener = Callable[[SessionUser | None], None]


class AuthSession:
    """Holds the current user for one client and notifies listeners on change.

    Listeners receive the current user immediately on subscribe and then on
    every login, signup, logout and profile update. Errors from the
    underlying AuthService propagate and leave the session untouched.
    """

    def __init__(self, auth_service: AuthService):
        self.auth_service = auth_service
        self._user: User | None = None
        self._listeners: list[UserListener] = []
        self.access_token: str | None = None
        self.refresh_token: str | None = None

    @property
    def user(self) -> SessionUser | None:
        return SessionUser.from_user(self._user) if self._user else None

    def subscribe(self, listener: UserListener) -> Callable[[], None]:
        """Register a listener and return a callable that removes it."""
        self._listeners.append(listener)
        listener(self.user)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        current = self.user
        for listener in list(self._listeners):
            try:
                listener(current)
            except Exception as exc:
                logger.error(f"Session listener failed: {exc}", exc_info=True)

    async def login(self, email: str, password: str) -> SessionUser:
        user = await self.auth_service.authenticate_user(email, password)
        self.access_token, self.refresh_token, _ = await self.auth_service.issue_tokens(user)
        self._user = user
        self._notify()
        return self.user

    async def signup(self, email: str, password: str, name: str) -> SessionUser:
        user = await self.auth_service.register_user(email, password, display_name=name)
        self.access_token, self.refresh_token, _ = await self.auth_service.issue_tokens(user)
        self._user = user
        self._notify()
        return self.user

    async def logout(self) -> None:
        if self.refresh_token:
            await self.auth_service.revoke_refresh_token(self.refresh_token)
        self.access_token = None
        self.refresh_token = None
        self._user = None
        self._notify()

    async def update_profile(self, **changes) -> SessionUser:
        """Update name/avatar of the signed-in user (display_name=, photo_url=)."""
        if self._user is None:
            raise RuntimeError("not_authenticated")
        self._user = await self.auth_service.update_profile(self._user, **changes)
        self._notify()
        return self.user
