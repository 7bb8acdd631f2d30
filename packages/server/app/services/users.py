"""
User service — account registration, lookup and profile updates.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import hash_password, verify_password
from app.core.errors import AuthenticationError, ConflictError, NotFoundError
from app.models.user import User
from churchserve_shared.schemas.users import RegisterRequest, UserProfileUpdate

log = structlog.get_logger()


async def get_user(user_id: uuid.UUID, session: AsyncSession) -> Optional[User]:
    return await session.get(User, user_id)


async def get_user_by_username(username: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def get_user_by_email(email: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def register_user(req: RegisterRequest, session: AsyncSession) -> User:
    """Create an account; usernames and emails are unique."""
    conditions = [User.username == req.username]
    if req.email:
        conditions.append(User.email == req.email)
    existing = await session.execute(select(User).where(or_(*conditions)))
    if existing.scalars().first():
        raise ConflictError("Username or email already registered")

    user = User(
        username=req.username,
        email=req.email,
        first_name=req.first_name,
        last_name=req.last_name,
        password_hash=hash_password(req.password),
    )
    session.add(user)
    await session.flush()

    log.info("user.registered", user_id=str(user.id), username=req.username)
    return user


async def authenticate(login: str, password: str, session: AsyncSession) -> User:
    """Check credentials; ``login`` may be a username or an email."""
    result = await session.execute(
        select(User).where(or_(User.username == login, User.email == login))
    )
    user = result.scalars().first()

    if not user or not user.password_hash or not verify_password(password, user.password_hash):
        log.warning("auth.login_failure", login=login)
        raise AuthenticationError("Invalid username or password")
    return user


async def update_profile(
    user_id: uuid.UUID, req: UserProfileUpdate, session: AsyncSession
) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    data = req.model_dump(exclude_unset=True)
    if "skills" in data and data["skills"] is None:
        data["skills"] = []
    for key, value in data.items():
        setattr(user, key, value)
    user.touch()
    session.add(user)
    await session.flush()

    log.info("user.profile_updated", user_id=str(user.id))
    return user
