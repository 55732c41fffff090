"""Authentication schema definitions."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, constr

from cardsurvey.schemas.base import BaseSchema


PasswordStr = constr(min_length=8, max_length=128)
EmailLike = constr(pattern=r"[^@\s]+@[^@\s]+\.[^@\s]+", min_length=5, max_length=255)
DisplayNameStr = constr(min_length=1, max_length=80)


class SignupRequest(BaseModel):
    """Payload for creating a new account."""

    email: EmailLike
    password: PasswordStr
    name: DisplayNameStr


class LoginRequest(BaseModel):
    """Login payload."""

    email: EmailLike
    password: PasswordStr


class RefreshRequest(BaseModel):
    """Refresh payload (optional when using cookies)."""

    refresh_token: Optional[str] = None


class LogoutRequest(BaseModel):
    """Logout payload; the refresh token may come from the cookie instead."""

    refresh_token: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    """Profile fields to change; omitted fields are left untouched."""

    name: Optional[DisplayNameStr] = None
    avatar_url: Optional[constr(max_length=1024)] = None


class UserInfo(BaseSchema):
    """Public view of an account."""

    user_id: UUID
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    created_at: datetime
    last_login_date: Optional[datetime] = None


class AuthTokenResponse(BaseModel):
    """Standard response containing JWT credentials."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo
