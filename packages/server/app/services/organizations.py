"""
Organization service — business logic for organization CRUD and memberships.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.opportunity import Opportunity
from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.user import User

from churchserve_shared.schemas.common import MemberRole
from churchserve_shared.schemas.details import MemberWithUser, OrganizationWithDetails
from churchserve_shared.schemas.opportunities import OpportunityRead
from churchserve_shared.schemas.organizations import (
    MembershipRead,
    OrganizationRead,
    OrgCreateRequest,
    OrgUpdateRequest,
    UserOrganizationItem,
)
from churchserve_shared.schemas.users import UserRead

log = structlog.get_logger()

# Columns an update may change but never clear
_REQUIRED_FIELDS = {"name", "address", "city", "state", "zip_code"}


async def create_organization(
    req: OrgCreateRequest,
    owner_id: uuid.UUID,
    session: AsyncSession,
) -> Organization:
    """Create an organization and make the creator its owner.

    The organization row and the owner membership are written in the same
    transaction; neither exists without the other.
    """
    owner = await session.get(User, owner_id)
    if owner is None:
        raise NotFoundError("User not found")

    org = Organization(**req.model_dump(), owner_id=owner_id)
    session.add(org)
    await session.flush()

    membership = OrganizationMember(
        organization_id=org.id,
        user_id=owner_id,
        role=MemberRole.OWNER.value,
    )
    session.add(membership)
    await session.flush()

    log.info("organization.created", organization_id=str(org.id), owner=str(owner_id))
    return org


async def get_organization_or_404(
    organization_id: uuid.UUID, session: AsyncSession
) -> Organization:
    org = await session.get(Organization, organization_id)
    if org is None:
        raise NotFoundError("Organization not found")
    return org


async def get_organization(
    organization_id: uuid.UUID, session: AsyncSession
) -> Optional[OrganizationWithDetails]:
    """Organization with owner, members and opportunities (newest first).

    Returns None when the id does not exist.
    """
    org = await session.get(Organization, organization_id)
    if org is None:
        return None

    owner = await session.get(User, org.owner_id)
    members = await get_organization_members(organization_id, session)
    result = await session.execute(
        select(Opportunity)
        .where(Opportunity.organization_id == organization_id)
        .order_by(Opportunity.created_at.desc())
    )
    opportunities = result.scalars().all()

    return OrganizationWithDetails(
        **OrganizationRead.model_validate(org).model_dump(),
        owner=UserRead.model_validate(owner),
        members=members,
        opportunities=[OpportunityRead.model_validate(o) for o in opportunities],
    )


async def get_organizations_by_owner(
    owner_id: uuid.UUID, session: AsyncSession
) -> list[Organization]:
    result = await session.execute(
        select(Organization)
        .where(Organization.owner_id == owner_id)
        .order_by(Organization.name.asc())
    )
    return list(result.scalars().all())


async def get_user_organizations(
    user_id: uuid.UUID, session: AsyncSession
) -> list[UserOrganizationItem]:
    """All organizations a user belongs to, with their membership."""
    result = await session.execute(
        select(OrganizationMember, Organization)
        .join(Organization, Organization.id == OrganizationMember.organization_id)
        .where(OrganizationMember.user_id == user_id)
        .order_by(Organization.name.asc())
    )
    return [
        UserOrganizationItem(
            membership=MembershipRead.model_validate(membership),
            organization=OrganizationRead.model_validate(org),
        )
        for membership, org in result.all()
    ]


async def update_organization(
    organization_id: uuid.UUID,
    req: OrgUpdateRequest,
    session: AsyncSession,
) -> Organization:
    """Apply a partial update. Unset fields are left untouched."""
    org = await get_organization_or_404(organization_id, session)

    data = req.model_dump(exclude_unset=True)
    cleared = sorted(k for k in _REQUIRED_FIELDS if k in data and data[k] is None)
    if cleared:
        raise ValidationError(f"Fields cannot be cleared: {', '.join(cleared)}")

    for key, value in data.items():
        setattr(org, key, value)
    org.touch()
    session.add(org)
    await session.flush()

    log.info("organization.updated", organization_id=str(org.id), fields=sorted(data))
    return org


async def verify_organization(
    organization_id: uuid.UUID, session: AsyncSession
) -> Organization:
    org = await get_organization_or_404(organization_id, session)
    org.is_verified = True
    org.touch()
    session.add(org)
    await session.flush()
    log.info("organization.verified", organization_id=str(org.id))
    return org


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


async def get_organization_members(
    organization_id: uuid.UUID, session: AsyncSession
) -> list[MemberWithUser]:
    result = await session.execute(
        select(OrganizationMember, User)
        .join(User, User.id == OrganizationMember.user_id)
        .where(OrganizationMember.organization_id == organization_id)
        .order_by(OrganizationMember.created_at.asc())
    )
    return [
        MemberWithUser(
            **MembershipRead.model_validate(membership).model_dump(),
            user=UserRead.model_validate(user),
        )
        for membership, user in result.all()
    ]


async def add_organization_member(
    organization_id: uuid.UUID,
    user_id: uuid.UUID,
    role: MemberRole,
    session: AsyncSession,
) -> OrganizationMember:
    """Add a user to an organization. Each user holds at most one membership."""
    if role == MemberRole.OWNER:
        raise ValidationError("An organization has exactly one owner")
    await get_organization_or_404(organization_id, session)
    if await session.get(User, user_id) is None:
        raise NotFoundError("User not found")
    if await session.get(OrganizationMember, (organization_id, user_id)) is not None:
        raise ConflictError("User is already a member of this organization")

    membership = OrganizationMember(
        organization_id=organization_id, user_id=user_id, role=role.value
    )
    session.add(membership)
    await session.flush()

    log.info(
        "organization.member_added",
        organization_id=str(organization_id),
        user_id=str(user_id),
        role=role.value,
    )
    return membership


async def _get_mutable_membership(
    organization_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> OrganizationMember:
    membership = await session.get(OrganizationMember, (organization_id, user_id))
    if membership is None:
        raise NotFoundError("Membership not found")
    if membership.role == MemberRole.OWNER.value:
        raise ValidationError("The owner membership cannot be changed or removed")
    return membership


async def update_member_role(
    organization_id: uuid.UUID,
    user_id: uuid.UUID,
    role: MemberRole,
    session: AsyncSession,
) -> OrganizationMember:
    if role == MemberRole.OWNER:
        raise ValidationError("An organization has exactly one owner")
    membership = await _get_mutable_membership(organization_id, user_id, session)
    membership.role = role.value
    session.add(membership)
    await session.flush()
    log.info(
        "organization.member_role_changed",
        organization_id=str(organization_id),
        user_id=str(user_id),
        role=role.value,
    )
    return membership


async def remove_organization_member(
    organization_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> None:
    membership = await _get_mutable_membership(organization_id, user_id, session)
    await session.delete(membership)
    await session.flush()
    log.info(
        "organization.member_removed",
        organization_id=str(organization_id),
        user_id=str(user_id),
    )
