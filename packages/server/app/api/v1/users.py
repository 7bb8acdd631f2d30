"""
Endpoints about the calling user: profile, signups and volunteer stats.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_session
from app.models.user import User
from app.services.signups import list_signups_for_user
from app.services.stats import volunteer_stats
from app.services.users import update_profile
from churchserve_shared.schemas.details import SignupWithOpportunity
from churchserve_shared.schemas.signups import VolunteerStats
from churchserve_shared.schemas.users import UserProfileUpdate, UserRead

router = APIRouter()


@router.patch("", response_model=UserRead)
async def update_me(
    body: UserProfileUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    user = await update_profile(user.id, body, session)
    await session.commit()
    return user


@router.get("/signups", response_model=List[SignupWithOpportunity])
async def list_my_signups(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """The caller's signups, newest first, with their opportunities."""
    return await list_signups_for_user(session, user.id)


@router.get("/stats", response_model=VolunteerStats)
async def get_my_stats(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await volunteer_stats(session, user.id)
