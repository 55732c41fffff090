"""FastAPI dependencies."""
import logging
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cardsurvey.config import get_settings
from cardsurvey.database import get_db
from cardsurvey.models.user import User
from cardsurvey.services.auth_service import AuthService, AuthError
from cardsurvey.services.user_service import UserService

logger = logging.getLogger(__name__)

settings = get_settings()


async def get_current_user(
        request: Request,
        authorization: str | None = Header(default=None, alias="Authorization"),
        db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the current authenticated user via JWT access token.

    Checks for access token in the following order:
    1. HTTP-only cookie (preferred, secure)
    2. Authorization header (API clients)
    """
    token = request.cookies.get(settings.access_token_cookie_name)
    token_source = "cookie"

    if not token and authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise HTTPException(status_code=401, detail="invalid_authorization_header")
        token_source = "header"

    if not token:
        raise HTTPException(status_code=401, detail="missing_credentials")

    auth_service = AuthService(db)
    try:
        payload = auth_service.decode_access_token(token)
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise AuthError("invalid_token")
        user_id = UUID(str(user_id_str))
    except (ValueError, AuthError) as exc:
        detail = "token_expired" if isinstance(exc, AuthError) and str(exc) == "token_expired" else "invalid_token"
        raise HTTPException(status_code=401, detail=detail) from exc

    user = await UserService(db).get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="invalid_token")

    logger.debug(f"Authenticated user via JWT {token_source}: {user.user_id}")
    return user


async def get_optional_user(
        request: Request,
        authorization: str | None = Header(default=None, alias="Authorization"),
        db: AsyncSession = Depends(get_db),
) -> User | None:
    """Return the current user if available, otherwise None for auth failures."""
    try:
        return await get_current_user(request, authorization, db)
    except HTTPException as exc:
        if exc.status_code == 401:
            return None
        raise
