"""
Dashboard aggregates for volunteers and organizations.

Each figure is one aggregate query; nothing is cached or denormalized.
"""

from __future__ import annotations

import uuid

from sqlalchemy import distinct, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.opportunity import Opportunity
from app.models.volunteer_signup import VolunteerSignup
from churchserve_shared.schemas.common import SignupStatus
from churchserve_shared.schemas.organizations import OrganizationStats
from churchserve_shared.schemas.signups import VolunteerStats


async def volunteer_stats(session: AsyncSession, user_id: uuid.UUID) -> VolunteerStats:
    """Hours and completions over the user's completed signups.

    ``churches_served`` counts distinct organizations across all of the
    user's signups, whatever their status.
    """
    completed = await session.execute(
        select(
            func.coalesce(func.sum(VolunteerSignup.hours_worked), 0),
            func.count(VolunteerSignup.id),
        ).where(
            VolunteerSignup.user_id == user_id,
            VolunteerSignup.status == SignupStatus.COMPLETED.value,
        )
    )
    hours, completed_count = completed.one()

    churches = await session.execute(
        select(func.count(distinct(Opportunity.organization_id)))
        .select_from(VolunteerSignup)
        .join(Opportunity, Opportunity.id == VolunteerSignup.opportunity_id)
        .where(VolunteerSignup.user_id == user_id)
    )

    return VolunteerStats(
        hours_volunteered=float(hours or 0),
        opportunities_completed=completed_count or 0,
        churches_served=churches.scalar_one() or 0,
    )


async def organization_stats(
    session: AsyncSession, organization_id: uuid.UUID
) -> OrganizationStats:
    # Inactive opportunities are the completed ones
    by_state = await session.execute(
        select(Opportunity.is_active, func.count(Opportunity.id))
        .where(Opportunity.organization_id == organization_id)
        .group_by(Opportunity.is_active)
    )
    counts = {bool(is_active): count for is_active, count in by_state.all()}

    volunteers = await session.execute(
        select(func.count(distinct(VolunteerSignup.user_id)))
        .select_from(VolunteerSignup)
        .join(Opportunity, Opportunity.id == VolunteerSignup.opportunity_id)
        .where(Opportunity.organization_id == organization_id)
    )

    return OrganizationStats(
        active_opportunities=counts.get(True, 0),
        completed_opportunities=counts.get(False, 0),
        total_volunteers=volunteers.scalar_one() or 0,
    )
