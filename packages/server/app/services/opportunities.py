"""
Opportunity service layer: creation, updates, deletion and the filtered,
hydrated listing.

Hydration joins each opportunity with its organization and creator in one
query, then loads the signups (with their users) for the whole page in a
second query and folds them in by opportunity id.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Any, Optional, Sequence

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFoundError, ValidationError
from app.models.opportunity import Opportunity
from app.models.organization import Organization
from app.models.user import User
from app.models.volunteer_signup import VolunteerSignup
from churchserve_shared.schemas.details import OpportunityWithDetails, SignupWithUser
from churchserve_shared.schemas.opportunities import (
    OpportunityCreate,
    OpportunityFilters,
    OpportunityRead,
    OpportunityUpdate,
)
from churchserve_shared.schemas.organizations import OrganizationRead
from churchserve_shared.schemas.signups import SignupRead
from churchserve_shared.schemas.users import UserRead

log = structlog.get_logger()

_REQUIRED_FIELDS = {
    "title", "description", "category", "date", "start_time", "end_time",
    "volunteers_needed", "required_skills", "is_recurring", "is_active",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_opportunity_or_404(
    session: AsyncSession, opportunity_id: uuid.UUID
) -> Opportunity:
    opportunity = await session.get(Opportunity, opportunity_id)
    if opportunity is None:
        raise NotFoundError("Opportunity not found")
    return opportunity


def _check_schedule(values: dict[str, Any]) -> None:
    """Validate the merged field values of a new or updated opportunity."""
    if values["end_time"] <= values["start_time"]:
        raise ValidationError("end_time must be after start_time")
    if values.get("is_recurring") and not values.get("recurring_pattern"):
        raise ValidationError("recurring_pattern is required for recurring opportunities")


def signup_with_user(signup: VolunteerSignup, user: User) -> SignupWithUser:
    return SignupWithUser(
        **SignupRead.model_validate(signup).model_dump(),
        user=UserRead.model_validate(user),
    )


async def signups_by_opportunity(
    session: AsyncSession, opportunity_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, list[SignupWithUser]]:
    """Signups with their users for many opportunities, in one query."""
    if not opportunity_ids:
        return {}
    result = await session.execute(
        select(VolunteerSignup, User)
        .join(User, User.id == VolunteerSignup.user_id)
        .where(VolunteerSignup.opportunity_id.in_(list(opportunity_ids)))
        .order_by(VolunteerSignup.created_at.asc())
    )
    grouped: dict[uuid.UUID, list[SignupWithUser]] = defaultdict(list)
    for signup, user in result.all():
        grouped[signup.opportunity_id].append(signup_with_user(signup, user))
    return grouped


def _hydrate(
    opportunity: Opportunity,
    organization: Organization,
    creator: User,
    signups: list[SignupWithUser],
) -> OpportunityWithDetails:
    return OpportunityWithDetails(
        **OpportunityRead.model_validate(opportunity).model_dump(),
        organization=OrganizationRead.model_validate(organization),
        created_by=UserRead.model_validate(creator),
        volunteer_signups=signups,
    )


def _details_query():
    return (
        select(Opportunity, Organization, User)
        .join(Organization, Organization.id == Opportunity.organization_id)
        .join(User, User.id == Opportunity.created_by_id)
    )


async def _fetch_hydrated(session: AsyncSession, stmt) -> list[OpportunityWithDetails]:
    rows = (await session.execute(stmt)).all()
    signups = await signups_by_opportunity(session, [row[0].id for row in rows])
    return [
        _hydrate(opportunity, organization, creator, signups.get(opportunity.id, []))
        for opportunity, organization, creator in rows
    ]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_opportunity(
    session: AsyncSession, opportunity_id: uuid.UUID
) -> Optional[OpportunityWithDetails]:
    """Hydrated opportunity, or None when the id does not exist."""
    items = await _fetch_hydrated(session, _details_query().where(Opportunity.id == opportunity_id))
    return items[0] if items else None


async def get_opportunities_by_ids(
    session: AsyncSession, opportunity_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, OpportunityWithDetails]:
    if not opportunity_ids:
        return {}
    items = await _fetch_hydrated(
        session, _details_query().where(Opportunity.id.in_(list(opportunity_ids)))
    )
    return {item.id: item for item in items}


async def list_opportunities(
    session: AsyncSession, filters: OpportunityFilters
) -> list[OpportunityWithDetails]:
    """Filtered page of opportunities, newest first."""
    stmt = _details_query()

    if filters.organization_id is not None:
        stmt = stmt.where(Opportunity.organization_id == filters.organization_id)
    if filters.category:
        stmt = stmt.where(Opportunity.category == filters.category)
    if filters.is_active is not None:
        stmt = stmt.where(Opportunity.is_active == filters.is_active)

    stmt = (
        stmt.order_by(Opportunity.created_at.desc())
        .offset(filters.offset)
        .limit(filters.limit)
    )
    return await _fetch_hydrated(session, stmt)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_opportunity(
    session: AsyncSession,
    data: OpportunityCreate,
    created_by_id: uuid.UUID,
) -> Opportunity:
    if await session.get(Organization, data.organization_id) is None:
        raise NotFoundError("Organization not found")

    values = data.model_dump()
    _check_schedule(values)
    if values["recurring_pattern"] is not None:
        values["recurring_pattern"] = values["recurring_pattern"].value

    opportunity = Opportunity(**values, created_by_id=created_by_id)
    session.add(opportunity)
    await session.flush()

    log.info(
        "opportunity.created",
        opportunity_id=str(opportunity.id),
        organization_id=str(opportunity.organization_id),
        created_by=str(created_by_id),
    )
    return opportunity


async def update_opportunity(
    session: AsyncSession,
    opportunity_id: uuid.UUID,
    data: OpportunityUpdate,
) -> Opportunity:
    """Apply a partial update. The live volunteer counter is not writable."""
    opportunity = await get_opportunity_or_404(session, opportunity_id)

    changes = data.model_dump(exclude_unset=True)
    cleared = sorted(k for k in _REQUIRED_FIELDS if k in changes and changes[k] is None)
    if cleared:
        raise ValidationError(f"Fields cannot be cleared: {', '.join(cleared)}")
    if changes.get("recurring_pattern") is not None:
        changes["recurring_pattern"] = changes["recurring_pattern"].value

    merged = opportunity.model_dump()
    merged.update(changes)
    _check_schedule(merged)

    for key, value in changes.items():
        setattr(opportunity, key, value)
    opportunity.touch()
    session.add(opportunity)
    await session.flush()

    log.info("opportunity.updated", opportunity_id=str(opportunity.id), fields=sorted(changes))
    return opportunity


async def delete_opportunity(session: AsyncSession, opportunity_id: uuid.UUID) -> None:
    """Delete an opportunity together with all of its signups.

    Signups go first so no row ever references a missing opportunity.
    Authorization is the caller's job.
    """
    result = await session.execute(
        delete(VolunteerSignup).where(VolunteerSignup.opportunity_id == opportunity_id)
    )
    await session.execute(delete(Opportunity).where(Opportunity.id == opportunity_id))
    await session.flush()

    log.info(
        "opportunity.deleted",
        opportunity_id=str(opportunity_id),
        signups_removed=result.rowcount,
    )
