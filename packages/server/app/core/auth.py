"""
Authentication and authorization for ChurchServe.

Supports:
- Username/password accounts (bcrypt hashes)
- JWT session cookie for browsers
- The same signed JWT as a Bearer token for API clients
- Organization role checks used by the HTTP layer before calling services
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import AuthenticationError, PermissionDeniedError
from app.models.organization_member import OrganizationMember
from app.models.user import User
from churchserve_shared.schemas.common import MemberRole

log = structlog.get_logger()
settings = get_settings()

SESSION_COOKIE = "cs_session"
CSRF_COOKIE = "cs_csrf"

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

def _user_id_from_request(request: Request, authorization: Optional[str]) -> Optional[uuid.UUID]:
    """Extract the caller's user id from the session cookie or Bearer header."""
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        try:
            payload = decode_jwt(token)
        except jwt.PyJWTError:
            raise AuthenticationError("Invalid or expired session")
        return uuid.UUID(payload["sub"])

    if authorization and authorization.startswith("Bearer "):
        try:
            return uuid.UUID(decode_jwt(authorization[7:].strip())["sub"])
        except (jwt.PyJWTError, KeyError, ValueError):
            raise AuthenticationError("Invalid bearer token")

    return None


async def get_optional_user(
    request: Request,
    authorization: Optional[str] = Depends(api_key_header),
    session: AsyncSession = Depends(get_session),
) -> Optional[User]:
    """Resolve the caller if credentials were sent; anonymous callers get None."""
    user_id = _user_id_from_request(request, authorization)
    if user_id is None:
        return None
    user = await session.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return user


async def get_current_user(
    user: Optional[User] = Depends(get_optional_user),
) -> User:
    """Main authentication dependency for endpoints that need an identity."""
    if user is None:
        raise AuthenticationError("Authentication required")
    return user


# ---------------------------------------------------------------------------
# Authorization helpers (called by route handlers)
# ---------------------------------------------------------------------------

async def get_membership(
    organization_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> Optional[OrganizationMember]:
    return await session.get(OrganizationMember, (organization_id, user_id))


async def require_org_role(
    organization_id: uuid.UUID,
    user: User,
    session: AsyncSession,
    roles: frozenset[MemberRole] | set[MemberRole],
) -> OrganizationMember:
    """Raise PermissionDeniedError unless the user holds one of ``roles``."""
    membership = await get_membership(organization_id, user.id, session)
    if membership is None or MemberRole(membership.role) not in roles:
        log.warning(
            "auth.org_role_denied",
            organization_id=str(organization_id),
            user_id=str(user.id),
            required=sorted(r.value for r in roles),
        )
        raise PermissionDeniedError("Insufficient organization role")
    return membership


def is_platform_admin(user: User) -> bool:
    return bool(user.email) and user.email.lower() in {
        e.lower() for e in settings.platform_admin_emails
    }
