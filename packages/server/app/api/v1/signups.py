"""
Signup endpoints addressed by signup id.

The signup's own volunteer, or an owner/admin of the organization running
the opportunity, may change or cancel it.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user, get_membership
from app.core.database import get_session
from app.core.errors import PermissionDeniedError
from app.models.opportunity import Opportunity
from app.models.user import User
from app.models.volunteer_signup import VolunteerSignup
from app.services.signups import cancel_signup, get_signup_or_404, update_signup_status
from churchserve_shared.schemas.common import MANAGER_ROLES, MemberRole
from churchserve_shared.schemas.signups import SignupRead, SignupStatusUpdate

router = APIRouter()


async def _check_signup_access(
    session: AsyncSession, signup: VolunteerSignup, user: User
) -> None:
    if signup.user_id == user.id:
        return
    opportunity = await session.get(Opportunity, signup.opportunity_id)
    if opportunity is not None:
        membership = await get_membership(opportunity.organization_id, user.id, session)
        if membership is not None and MemberRole(membership.role) in MANAGER_ROLES:
            return
    raise PermissionDeniedError("Not allowed to change this signup")


@router.patch("/{signup_id}", response_model=SignupRead)
async def update_signup_endpoint(
    signup_id: uuid.UUID,
    body: SignupStatusUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Change a signup's status and record hours worked."""
    signup = await get_signup_or_404(session, signup_id)
    await _check_signup_access(session, signup, user)
    signup = await update_signup_status(session, signup_id, body.status, body.hours_worked)
    await session.commit()
    return signup


@router.delete("/{signup_id}")
async def cancel_signup_endpoint(
    signup_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Cancel (delete) a signup. Unknown ids succeed without doing anything."""
    signup = await session.get(VolunteerSignup, signup_id)
    if signup is not None:
        await _check_signup_access(session, signup, user)
    await cancel_signup(session, signup_id)
    await session.commit()
    return {"message": "Signup cancelled"}
