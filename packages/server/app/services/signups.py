"""
Signup lifecycle: creating, updating and cancelling volunteer signups while
keeping ``Opportunity.current_volunteers`` equal to the number of
non-cancelled signups.

The counter is only ever changed by an UPDATE that does the arithmetic in
the database (``current_volunteers = current_volunteers + 1``), issued in the
same session transaction as the signup write, so concurrent requests cannot
lose updates and a failed request leaves neither write behind.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.base import utcnow
from app.models.opportunity import Opportunity
from app.models.user import User
from app.models.volunteer_signup import VolunteerSignup
from app.services.opportunities import (
    get_opportunities_by_ids,
    get_opportunity_or_404,
    signups_by_opportunity,
)
from churchserve_shared.schemas.common import SignupStatus
from churchserve_shared.schemas.details import SignupWithOpportunity, SignupWithUser
from churchserve_shared.schemas.signups import SignupRead

log = structlog.get_logger()

DUPLICATE_SIGNUP_MESSAGE = "Already signed up for this opportunity"


async def _adjust_volunteer_count(
    session: AsyncSession, opportunity_id: uuid.UUID, delta: int
) -> None:
    """Atomically add ``delta`` to the opportunity's counter, never below zero."""
    new_count = Opportunity.current_volunteers + delta
    if delta < 0:
        new_count = case((new_count < 0, 0), else_=new_count)
    await session.execute(
        update(Opportunity)
        .where(Opportunity.id == opportunity_id)
        .values(current_volunteers=new_count, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    # Reload the stored value into any copy held by this session
    opportunity = await session.get(Opportunity, opportunity_id)
    if opportunity is not None:
        await session.refresh(opportunity, attribute_names=["current_volunteers", "updated_at"])


def _coerce_status(status: SignupStatus | str) -> SignupStatus:
    try:
        return SignupStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown signup status '{status}'")


async def _has_active_signup(
    session: AsyncSession, opportunity_id: uuid.UUID, user_id: uuid.UUID
) -> bool:
    result = await session.execute(
        select(VolunteerSignup.id).where(
            VolunteerSignup.opportunity_id == opportunity_id,
            VolunteerSignup.user_id == user_id,
            VolunteerSignup.status != SignupStatus.CANCELLED.value,
        )
    )
    return result.first() is not None


async def _flush_signup(session: AsyncSession) -> None:
    """Flush pending signup writes; a second live signup loses to the unique index."""
    try:
        await session.flush()
    except IntegrityError:
        raise ConflictError(DUPLICATE_SIGNUP_MESSAGE)


async def get_signup_or_404(session: AsyncSession, signup_id: uuid.UUID) -> VolunteerSignup:
    signup = await session.get(VolunteerSignup, signup_id)
    if signup is None:
        raise NotFoundError("Signup not found")
    return signup


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def sign_up(
    session: AsyncSession,
    opportunity_id: uuid.UUID,
    user_id: uuid.UUID,
    notes: Optional[str] = None,
) -> VolunteerSignup:
    """Create a signup and count it against the opportunity.

    Capacity is not enforced; a full opportunity still accepts signups.
    A user may hold only one non-cancelled signup per opportunity.
    """
    await get_opportunity_or_404(session, opportunity_id)
    if await session.get(User, user_id) is None:
        raise ValidationError("Unknown user")

    if await _has_active_signup(session, opportunity_id, user_id):
        raise ConflictError(DUPLICATE_SIGNUP_MESSAGE)

    signup = VolunteerSignup(
        opportunity_id=opportunity_id,
        user_id=user_id,
        status=SignupStatus.SIGNED_UP.value,
        notes=notes,
    )
    session.add(signup)
    await _flush_signup(session)
    await _adjust_volunteer_count(session, opportunity_id, +1)

    log.info(
        "signup.created",
        signup_id=str(signup.id),
        opportunity_id=str(opportunity_id),
        user_id=str(user_id),
    )
    return signup


async def update_signup_status(
    session: AsyncSession,
    signup_id: uuid.UUID,
    status: SignupStatus | str,
    hours_worked: Optional[Decimal] = None,
) -> VolunteerSignup:
    """Set a signup's status (any status from any status) and hours worked.

    Moving into or out of ``cancelled`` moves the opportunity counter with it.
    """
    target = _coerce_status(status)
    if hours_worked is not None and hours_worked < 0:
        raise ValidationError("hours_worked cannot be negative")

    signup = await get_signup_or_404(session, signup_id)
    previous = SignupStatus(signup.status)

    signup.status = target.value
    if hours_worked is not None:
        signup.hours_worked = hours_worked
    signup.touch()
    session.add(signup)
    await _flush_signup(session)

    if previous != SignupStatus.CANCELLED and target == SignupStatus.CANCELLED:
        await _adjust_volunteer_count(session, signup.opportunity_id, -1)
    elif previous == SignupStatus.CANCELLED and target != SignupStatus.CANCELLED:
        await _adjust_volunteer_count(session, signup.opportunity_id, +1)

    log.info(
        "signup.status_changed",
        signup_id=str(signup.id),
        from_status=previous.value,
        to_status=target.value,
        hours_worked=str(hours_worked) if hours_worked is not None else None,
    )
    return signup


async def cancel_signup(session: AsyncSession, signup_id: uuid.UUID) -> None:
    """Delete a signup and release its place. Unknown ids are ignored."""
    signup = await session.get(VolunteerSignup, signup_id)
    if signup is None:
        log.info("signup.cancel_skipped", signup_id=str(signup_id))
        return

    opportunity_id = signup.opportunity_id
    was_counted = signup.status != SignupStatus.CANCELLED.value
    await session.delete(signup)
    await session.flush()
    if was_counted:
        await _adjust_volunteer_count(session, opportunity_id, -1)

    log.info("signup.cancelled", signup_id=str(signup_id), opportunity_id=str(opportunity_id))


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_signups_for_opportunity(
    session: AsyncSession, opportunity_id: uuid.UUID
) -> list[SignupWithUser]:
    grouped = await signups_by_opportunity(session, [opportunity_id])
    return grouped.get(opportunity_id, [])


async def list_signups_for_user(
    session: AsyncSession, user_id: uuid.UUID
) -> list[SignupWithOpportunity]:
    """A user's signups, newest first, each with its hydrated opportunity."""
    result = await session.execute(
        select(VolunteerSignup)
        .where(VolunteerSignup.user_id == user_id)
        .order_by(VolunteerSignup.created_at.desc())
    )
    signups = result.scalars().all()
    opportunities = await get_opportunities_by_ids(
        session, list({s.opportunity_id for s in signups})
    )
    return [
        SignupWithOpportunity(
            **SignupRead.model_validate(signup).model_dump(),
            opportunity=opportunities[signup.opportunity_id],
        )
        for signup in signups
        if signup.opportunity_id in opportunities
    ]
