"""Authentication and authorization helpers."""
from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from datetime import UTC, datetime, timedelta

import jwt
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cardsurvey.config import get_settings
from cardsurvey.models.refresh_token import RefreshToken
from cardsurvey.models.user import User
from cardsurvey.services.user_service import UserService, UserServiceError

logger = logging.getLogger(__name__)


class AuthError(RuntimeError):
    """Raised when authentication fails."""


def _hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class AuthService:
    """Service responsible for credential management and JWT issuance."""

    def __init__(self, db: AsyncSession, *, user_service: UserService | None = None):
        self.db = db
        self.settings = get_settings()
        self.user_service = user_service or UserService(db)

    # ------------------------------------------------------------------
    # Registration and profile
    # ------------------------------------------------------------------
    async def register_user(self, email: str, password: str, display_name: str | None = None) -> User:
        """Create an account and set its display name."""
        try:
            return await self.user_service.register_user(
                email=email, password=password, display_name=display_name
            )
        except UserServiceError as exc:
            raise AuthError(str(exc)) from exc

    async def update_profile(self, user: User, **changes) -> User:
        """Update display_name and/or photo_url for the given user."""
        return await self.user_service.update_profile(user, **changes)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    async def authenticate_user(self, email: str, password: str) -> User:
        """Authenticate a user using email and password."""
        try:
            user = await self.user_service.login_user(email=email, password=password)
        except UserServiceError as exc:
            raise AuthError("Email/password combination is invalid") from exc

        user.last_login_date = datetime.now(UTC)
        await self.db.commit()
        return user

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------
    def create_access_token(self, user: User) -> tuple[str, int]:
        expire = datetime.now(UTC) + timedelta(minutes=self.settings.access_token_exp_minutes)
        payload = {
            "sub": str(user.user_id),
            "email": user.email,
            "exp": int(expire.timestamp()),
        }
        token = jwt.encode(payload, self.settings.secret_key, algorithm=self.settings.jwt_algorithm)
        expires_in = self.settings.access_token_exp_minutes * 60
        return token, expires_in

    def decode_access_token(self, token: str) -> dict[str, str]:
        try:
            return jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=[self.settings.jwt_algorithm],
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("token_expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthError("invalid_token") from exc

    async def _store_refresh_token(self, user: User, raw_token: str, expires_at: datetime) -> RefreshToken:
        refresh_token = RefreshToken(
            token_id=uuid.uuid4(),
            user_id=user.user_id,
            token_hash=_hash_token(raw_token),
            expires_at=expires_at,
        )
        self.db.add(refresh_token)
        return refresh_token

    async def _get_refresh_token(self, raw_token: str) -> RefreshToken | None:
        result = await self.db.execute(
            select(RefreshToken).where(RefreshToken.token_hash == _hash_token(raw_token))
        )
        return result.scalar_one_or_none()

    async def revoke_refresh_token(self, raw_token: str) -> None:
        refresh_token = await self._get_refresh_token(raw_token)
        if refresh_token:
            refresh_token.revoked_at = datetime.now(UTC)
            await self.db.commit()

    async def revoke_all_refresh_tokens(self, user_id: uuid.UUID) -> None:
        await self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .where(RefreshToken.revoked_at.is_(None))
            .values(revoked_at=datetime.now(UTC))
        )
        await self.db.commit()

    async def issue_tokens(self, user: User, *, rotate_existing: bool = True) -> tuple[str, str, int]:
        if rotate_existing:
            await self.revoke_all_refresh_tokens(user.user_id)

        access_token, expires_in = self.create_access_token(user)
        refresh_expires_at = datetime.now(UTC) + timedelta(days=self.settings.refresh_token_exp_days)
        raw_refresh_token = secrets.token_urlsafe(48)
        await self._store_refresh_token(user, raw_refresh_token, refresh_expires_at)
        await self.db.commit()
        return access_token, raw_refresh_token, expires_in

    async def exchange_refresh_token(self, raw_token: str) -> tuple[User, str, str, int]:
        try:
            refresh_token = await self._get_refresh_token(raw_token)
            if not refresh_token or not refresh_token.is_active():
                raise AuthError("Token could not be refreshed, please log in again")

            user = await self.user_service.get_user_by_id(refresh_token.user_id)
            if not user:
                raise AuthError("Token could not be refreshed, please log in again")

            refresh_token.revoked_at = datetime.now(UTC)

            access_token, expires_in = self.create_access_token(user)
            new_refresh_token_value = secrets.token_urlsafe(48)
            new_refresh_expires = datetime.now(UTC) + timedelta(days=self.settings.refresh_token_exp_days)
            await self._store_refresh_token(user, new_refresh_token_value, new_refresh_expires)
            await self.db.commit()
            return user, access_token, new_refresh_token_value, expires_in
        except AuthError:
            await self.db.rollback()
            raise
        except Exception:  # pragma: no cover
            await self.db.rollback()
            logger.error("Unexpected error exchanging refresh token", exc_info=True)
            raise
