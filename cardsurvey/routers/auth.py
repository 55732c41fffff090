"""Authentication endpoints."""
from fastapi import APIRouter, Cookie, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from cardsurvey.config import get_settings
from cardsurvey.database import get_db
from cardsurvey.dependencies import get_current_user
from cardsurvey.models.user import User
from cardsurvey.schemas.auth import (
    AuthTokenResponse,
    LoginRequest,
    LogoutRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    SignupRequest,
    UserInfo,
)
from cardsurvey.services import AuthService, AuthError
from cardsurvey.utils.cookies import (
    clear_auth_cookies,
    set_access_token_cookie,
    set_refresh_cookie,
)

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


async def _complete_login(user: User, response: Response, db: AsyncSession) -> AuthTokenResponse:
    """Issue tokens and set cookies after a successful signup or login."""
    auth_service = AuthService(db)
    access_token, refresh_token, expires_in = await auth_service.issue_tokens(user)
    set_access_token_cookie(response, access_token)
    set_refresh_cookie(response, refresh_token, expires_days=settings.refresh_token_exp_days)

    return AuthTokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=expires_in,
        user=UserInfo.model_validate(user),
    )


@router.post("/signup", response_model=AuthTokenResponse, status_code=201)
async def signup(
    request: SignupRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> AuthTokenResponse:
    """Create an account with a display name and sign it in."""
    auth_service = AuthService(db)
    try:
        user = await auth_service.register_user(request.email, request.password, display_name=request.name)
    except AuthError as exc:
        message = str(exc)
        status_code = 409 if message == "email_taken" else 400
        raise HTTPException(status_code=status_code, detail=message) from exc

    return await _complete_login(user, response, db)


@router.post("/login", response_model=AuthTokenResponse)
async def login(
    request: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> AuthTokenResponse:
    """Authenticate via email/password and issue JWT tokens."""
    auth_service = AuthService(db)
    try:
        user = await auth_service.authenticate_user(request.email, request.password)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    return await _complete_login(user, response, db)


@router.post("/refresh", response_model=AuthTokenResponse)
async def refresh_tokens(
    request: RefreshRequest,
    response: Response,
    refresh_cookie: str | None = Cookie(
        default=None, alias=settings.refresh_token_cookie_name
    ),
    db: AsyncSession = Depends(get_db),
) -> AuthTokenResponse:
    """Exchange a refresh token for new JWT credentials."""
    token = request.refresh_token or refresh_cookie
    if not token:
        raise HTTPException(status_code=401, detail="missing_refresh_token")

    auth_service = AuthService(db)
    try:
        user, access_token, new_refresh_token, expires_in = await auth_service.exchange_refresh_token(token)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    set_access_token_cookie(response, access_token)
    set_refresh_cookie(response, new_refresh_token, expires_days=settings.refresh_token_exp_days)

    return AuthTokenResponse(
        access_token=access_token,
        refresh_token=new_refresh_token,
        token_type="bearer",
        expires_in=expires_in,
        user=UserInfo.model_validate(user),
    )


@router.post("/logout", status_code=204)
async def logout(
    request: LogoutRequest,
    response: Response,
    refresh_cookie: str | None = Cookie(
        default=None, alias=settings.refresh_token_cookie_name
    ),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Invalidate the provided refresh token and clear cookies."""
    token = request.refresh_token or refresh_cookie
    if token:
        await AuthService(db).revoke_refresh_token(token)

    clear_auth_cookies(response)
    response.status_code = 204
    return None


@router.get("/me", response_model=UserInfo)
async def get_me(user: User = Depends(get_current_user)) -> UserInfo:
    """Return the signed-in user's profile."""
    return UserInfo.model_validate(user)


@router.patch("/me", response_model=UserInfo)
async def update_me(
    request: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserInfo:
    """Update display name and/or avatar URL."""
    changes = {}
    if "name" in request.model_fields_set:
        changes["display_name"] = request.name
    if "avatar_url" in request.model_fields_set:
        changes["photo_url"] = request.avatar_url

    updated = await AuthService(db).update_profile(user, **changes)
    return UserInfo.model_validate(updated)
