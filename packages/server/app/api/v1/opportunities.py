"""
Opportunity endpoints: listing, CRUD and signing up.

Listing and reading are public. Creating requires an owner or admin of the
organization; editing and deleting are reserved for the opportunity's creator.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user, require_org_role
from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import NotFoundError, PermissionDeniedError
from app.models.user import User
from app.services.opportunities import (
    create_opportunity,
    delete_opportunity,
    get_opportunity,
    get_opportunity_or_404,
    list_opportunities,
    update_opportunity,
)
from app.services.signups import list_signups_for_opportunity, sign_up
from churchserve_shared.schemas.common import MANAGER_ROLES, OPPORTUNITY_CATEGORIES
from churchserve_shared.schemas.details import OpportunityWithDetails, SignupWithUser
from churchserve_shared.schemas.opportunities import (
    OpportunityCreate,
    OpportunityFilters,
    OpportunityUpdate,
)
from churchserve_shared.schemas.signups import SignupCreateRequest, SignupRead

settings = get_settings()
router = APIRouter()


async def _require_creator(session: AsyncSession, opportunity_id: uuid.UUID, user: User) -> None:
    opportunity = await get_opportunity_or_404(session, opportunity_id)
    if opportunity.created_by_id != user.id:
        raise PermissionDeniedError("Only the creator can change this opportunity")


# ---------------------------------------------------------------------------
# Opportunity CRUD
# ---------------------------------------------------------------------------


@router.get("", response_model=List[OpportunityWithDetails])
async def list_opportunities_endpoint(
    organization_id: Optional[uuid.UUID] = None,
    category: Optional[str] = None,
    is_active: Optional[bool] = True,
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    """List opportunities, newest first. Inactive ones are hidden by default."""
    filters = OpportunityFilters(
        organization_id=organization_id,
        category=category,
        is_active=is_active,
        limit=limit,
        offset=offset,
    )
    return await list_opportunities(session, filters)


@router.get("/categories", response_model=List[str])
async def list_categories():
    """Suggested categories. Opportunities may use any category string."""
    return OPPORTUNITY_CATEGORIES


@router.post("", response_model=OpportunityWithDetails, status_code=201)
async def create_opportunity_endpoint(
    body: OpportunityCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await require_org_role(body.organization_id, user, session, MANAGER_ROLES)
    opportunity = await create_opportunity(session, body, user.id)
    await session.commit()
    return await get_opportunity(session, opportunity.id)


@router.get("/{opportunity_id}", response_model=OpportunityWithDetails)
async def get_opportunity_endpoint(
    opportunity_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
):
    opportunity = await get_opportunity(session, opportunity_id)
    if opportunity is None:
        raise NotFoundError("Opportunity not found")
    return opportunity


@router.patch("/{opportunity_id}", response_model=OpportunityWithDetails)
async def update_opportunity_endpoint(
    opportunity_id: uuid.UUID,
    body: OpportunityUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await _require_creator(session, opportunity_id, user)
    await update_opportunity(session, opportunity_id, body)
    await session.commit()
    return await get_opportunity(session, opportunity_id)


@router.delete("/{opportunity_id}", status_code=204)
async def delete_opportunity_endpoint(
    opportunity_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Delete an opportunity and every signup against it."""
    await _require_creator(session, opportunity_id, user)
    await delete_opportunity(session, opportunity_id)
    await session.commit()


# ---------------------------------------------------------------------------
# Signups
# ---------------------------------------------------------------------------


@router.post("/{opportunity_id}/signup", response_model=SignupRead, status_code=201)
async def sign_up_endpoint(
    opportunity_id: uuid.UUID,
    body: Optional[SignupCreateRequest] = None,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Sign the caller up. Full opportunities still accept signups."""
    signup = await sign_up(session, opportunity_id, user.id, body.notes if body else None)
    await session.commit()
    return signup


@router.get("/{opportunity_id}/signups", response_model=List[SignupWithUser])
async def list_opportunity_signups(
    opportunity_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Signups for an opportunity (organization owners and admins)."""
    opportunity = await get_opportunity_or_404(session, opportunity_id)
    await require_org_role(opportunity.organization_id, user, session, MANAGER_ROLES)
    return await list_signups_for_opportunity(session, opportunity_id)
