"""User account service: registration, credential checks, profile edits."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cardsurvey.models.user import User
from cardsurvey.utils.passwords import (
    PasswordValidationError,
    hash_password,
    validate_password_strength,
    verify_password,
)

logger = logging.getLogger(__name__)

_UNSET = object()


class UserServiceError(RuntimeError):
    """Raised when user operations fail."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """Persistence and credential logic for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        result = await self.db.execute(select(User).where(User.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    async def register_user(self, *, email: str, password: str, display_name: str | None = None) -> User:
        """Create a new account and set its display name."""
        normalized_email = normalize_email(email)
        try:
            validate_password_strength(password)
        except PasswordValidationError as exc:
            raise UserServiceError(str(exc)) from exc

        if await self.get_user_by_email(normalized_email):
            raise UserServiceError("email_taken")

        user = User(
            email=normalized_email,
            display_name=(display_name or "").strip() or None,
            password_hash=hash_password(password),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise UserServiceError("email_taken") from exc
        await self.db.refresh(user)
        logger.info(f"Registered user {user.user_id}")
        return user

    async def login_user(self, *, email: str, password: str) -> User:
        user = await self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise UserServiceError("invalid_credentials")
        return user

    async def update_profile(
        self,
        user: User,
        *,
        display_name: str | None | object = _UNSET,
        photo_url: str | None | object = _UNSET,
    ) -> User:
        """Update display name and/or avatar URL; omitted fields stay unchanged."""
        if display_name is not _UNSET:
            user.display_name = display_name.strip() if isinstance(display_name, str) else None
        if photo_url is not _UNSET:
            user.photo_url = photo_url or None
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"Updated profile for user {user.user_id}")
        return user
