"""
Authentication endpoints.

- Username/password registration & login
- JWT session cookie plus CSRF cookie (double-submit)
- Logout clears both cookies
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    create_jwt,
    generate_csrf_token,
    get_current_user,
)
from app.core.config import get_settings
from app.core.database import get_session
from app.models.user import User
from app.services.users import authenticate, register_user
from churchserve_shared.schemas.users import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserRead,
)

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, **COOKIE_KWARGS)
    response.set_cookie(
        key=CSRF_COOKIE,
        value=csrf,
        httponly=False,  # JS must read this
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=settings.jwt_expire_minutes * 60,
    )


def _start_session(response: Response, user: User) -> None:
    token, _jti = create_jwt(user.id)
    _set_session_cookies(response, token, generate_csrf_token())


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Create an account and sign the new user in."""
    user = await register_user(body, session)
    await session.commit()
    _start_session(response, user)
    return AuthResponse(
        user_id=str(user.id),
        username=user.username,
        message="Registration successful",
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with username (or email) and password."""
    user = await authenticate(body.username, body.password, session)
    _start_session(response, user)

    log.info("auth.login_success", user_id=str(user.id))
    return AuthResponse(
        user_id=str(user.id),
        username=user.username,
        message="Login successful",
    )


@router.post("/logout")
async def logout(response: Response):
    """End the current browser session."""
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return {"message": "Logged out"}


@router.get("/user", response_model=UserRead)
async def current_user(user: User = Depends(get_current_user)):
    return user
