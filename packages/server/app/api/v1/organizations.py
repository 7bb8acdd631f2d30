"""
Organization API endpoints.

POST   /api/v1/organizations                       — Create (caller becomes owner)
GET    /api/v1/organizations/my                    — Caller's memberships
GET    /api/v1/organizations/owned                 — Organizations the caller owns, by name
GET    /api/v1/organizations/{orgId}               — Details with members and opportunities
PATCH  /api/v1/organizations/{orgId}               — Update (owner only)
GET    /api/v1/organizations/{orgId}/stats         — Dashboard counts
POST   /api/v1/organizations/{orgId}/verify        — Mark verified (platform admin only)
GET    /api/v1/organizations/{orgId}/members       — List members
POST   /api/v1/organizations/{orgId}/members       — Add a member (owner/admin)
PATCH  /api/v1/organizations/{orgId}/members/{userId} — Change role (owner/admin)
DELETE /api/v1/organizations/{orgId}/members/{userId} — Remove member (owner/admin)
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user, is_platform_admin, require_org_role
from app.core.database import get_session
from app.core.errors import NotFoundError, PermissionDeniedError
from app.models.user import User
from app.services import organizations as org_service
from app.services.stats import organization_stats
from churchserve_shared.schemas.common import MANAGER_ROLES, MemberRole
from churchserve_shared.schemas.details import MemberWithUser, OrganizationWithDetails
from churchserve_shared.schemas.organizations import (
    MemberAddRequest,
    MemberRoleUpdateRequest,
    MembershipRead,
    OrganizationRead,
    OrganizationStats,
    OrgCreateRequest,
    OrgUpdateRequest,
    UserOrganizationItem,
)

router = APIRouter()


@router.post("", response_model=OrganizationRead, status_code=201)
async def create_org(
    body: OrgCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes its owner."""
    org = await org_service.create_organization(body, user.id, session)
    await session.commit()
    return org


@router.get("/my", response_model=List[UserOrganizationItem])
async def list_my_orgs(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List the organizations the caller belongs to."""
    return await org_service.get_user_organizations(user.id, session)


@router.get("/owned", response_model=List[OrganizationRead])
async def list_owned_orgs(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await org_service.get_organizations_by_owner(user.id, session)


@router.get("/{org_id}", response_model=OrganizationWithDetails)
async def get_org(
    org_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
):
    org = await org_service.get_organization(org_id, session)
    if org is None:
        raise NotFoundError("Organization not found")
    return org


@router.patch("/{org_id}", response_model=OrganizationRead)
async def update_org(
    org_id: uuid.UUID,
    body: OrgUpdateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Update organization details (owner only)."""
    await require_org_role(org_id, user, session, {MemberRole.OWNER})
    org = await org_service.update_organization(org_id, body, session)
    await session.commit()
    return org


@router.get("/{org_id}/stats", response_model=OrganizationStats)
async def get_org_stats(
    org_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
):
    await org_service.get_organization_or_404(org_id, session)
    return await organization_stats(session, org_id)


@router.post("/{org_id}/verify", response_model=OrganizationRead)
async def verify_org(
    org_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    if not is_platform_admin(user):
        raise PermissionDeniedError("Only platform administrators can verify organizations")
    org = await org_service.verify_organization(org_id, session)
    await session.commit()
    return org


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@router.get("/{org_id}/members", response_model=List[MemberWithUser])
async def list_members(
    org_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await org_service.get_organization_or_404(org_id, session)
    return await org_service.get_organization_members(org_id, session)


@router.post("/{org_id}/members", response_model=MembershipRead, status_code=201)
async def add_member(
    org_id: uuid.UUID,
    body: MemberAddRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await require_org_role(org_id, user, session, MANAGER_ROLES)
    membership = await org_service.add_organization_member(
        org_id, body.user_id, body.role, session
    )
    await session.commit()
    return membership


@router.patch("/{org_id}/members/{user_id}", response_model=MembershipRead)
async def update_member(
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    body: MemberRoleUpdateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await require_org_role(org_id, user, session, MANAGER_ROLES)
    membership = await org_service.update_member_role(org_id, user_id, body.role, session)
    await session.commit()
    return membership


@router.delete("/{org_id}/members/{user_id}", status_code=204)
async def remove_member(
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Remove a member. Members may also remove themselves."""
    if user_id != user.id:
        await require_org_role(org_id, user, session, MANAGER_ROLES)
    await org_service.remove_organization_member(org_id, user_id, session)
    await session.commit()
