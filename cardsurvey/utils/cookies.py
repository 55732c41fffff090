"""HTTP cookie helpers."""
from fastapi import Response

from cardsurvey.config import get_settings


def _set_auth_cookie(response: Response, name: str, token: str, max_age: int) -> None:
    settings = get_settings()
    # Secure flag: only disable for local development
    secure_value = settings.environment != "development"

    response.set_cookie(
        key=name,
        value=token,
        httponly=True,
        secure=secure_value,
        samesite="lax",
        max_age=max_age,
        expires=max_age,
        path="/",
    )


def set_refresh_cookie(response: Response, token: str, *, expires_days: int | None = None) -> None:
    """Set the refresh token cookie with secure defaults.

    Args:
        response: FastAPI Response object
        token: The token to set in the cookie
        expires_days: Optional override for token expiration (defaults to configured value)
    """
    settings = get_settings()
    days = expires_days or settings.refresh_token_exp_days
    _set_auth_cookie(response, settings.refresh_token_cookie_name, token, days * 24 * 60 * 60)


def set_access_token_cookie(response: Response, token: str) -> None:
    """Set the access token cookie; lifetime follows access_token_exp_minutes."""
    settings = get_settings()
    _set_auth_cookie(
        response, settings.access_token_cookie_name, token, settings.access_token_exp_minutes * 60
    )


def clear_auth_cookies(response: Response) -> None:
    """Remove both access and refresh token cookies from the client."""
    settings = get_settings()
    response.delete_cookie(key=settings.access_token_cookie_name, path="/")
    response.delete_cookie(key=settings.refresh_token_cookie_name, path="/")
