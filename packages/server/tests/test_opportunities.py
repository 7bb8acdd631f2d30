"""
Opportunity service: listing filters, hydration, updates and cascading delete.
"""

from __future__ import annotations

import datetime as dt
import uuid

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import func, update
from sqlmodel import select

from app.core.errors import NotFoundError, ValidationError
from app.models.opportunity import Opportunity
from app.models.volunteer_signup import VolunteerSignup
from app.services.opportunities import (
    delete_opportunity,
    get_opportunities_by_ids,
    get_opportunity,
    list_opportunities,
    update_opportunity,
)
from app.services.signups import sign_up
from churchserve_shared.schemas.common import RecurringPattern
from churchserve_shared.schemas.opportunities import (
    OpportunityCreate,
    OpportunityFilters,
    OpportunityUpdate,
)


@pytest.fixture
async def church(make_user, make_org):
    owner = await make_user("pastor")
    org = await make_org(owner)
    return owner, org


async def _deactivate(session, opportunity):
    return await update_opportunity(session, opportunity.id, OpportunityUpdate(is_active=False))


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListOpportunities:
    @pytest.mark.asyncio
    async def test_active_only_by_default(self, session, church, make_opportunity):
        owner, org = church
        active = await make_opportunity(org, owner, title="Active")
        inactive = await make_opportunity(org, owner, title="Done")
        await _deactivate(session, inactive)

        items = await list_opportunities(session, OpportunityFilters())
        assert [i.id for i in items] == [active.id]
        assert all(i.is_active for i in items)

    @pytest.mark.asyncio
    async def test_inactive_when_asked(self, session, church, make_opportunity):
        owner, org = church
        await make_opportunity(org, owner, title="Active")
        inactive = await make_opportunity(org, owner, title="Done")
        await _deactivate(session, inactive)

        items = await list_opportunities(session, OpportunityFilters(is_active=False))
        assert [i.id for i in items] == [inactive.id]

    @pytest.mark.asyncio
    async def test_none_lists_both(self, session, church, make_opportunity):
        owner, org = church
        await make_opportunity(org, owner, title="Active")
        inactive = await make_opportunity(org, owner, title="Done")
        await _deactivate(session, inactive)

        items = await list_opportunities(session, OpportunityFilters(is_active=None))
        assert len(items) == 2

    @pytest.mark.asyncio
    async def test_category_exact_match(self, session, church, make_opportunity):
        owner, org = church
        await make_opportunity(org, owner, category="Food Service")
        await make_opportunity(org, owner, category="Food Service", title="Soup kitchen")
        await make_opportunity(org, owner, category="Senior Care", title="Visits")

        items = await list_opportunities(session, OpportunityFilters(category="Food Service"))
        assert len(items) == 2
        assert all(i.category == "Food Service" for i in items)

    @pytest.mark.asyncio
    async def test_organization_filter(self, session, church, make_user, make_org, make_opportunity):
        owner, org = church
        other_owner = await make_user("other-pastor")
        other_org = await make_org(other_owner, name="St. Mark's")
        mine = await make_opportunity(org, owner)
        await make_opportunity(other_org, other_owner)

        items = await list_opportunities(session, OpportunityFilters(organization_id=org.id))
        assert [i.id for i in items] == [mine.id]

    @pytest.mark.asyncio
    async def test_newest_first_with_paging(self, session, church, make_opportunity):
        owner, org = church
        created = []
        for day in range(3):
            opportunity = await make_opportunity(org, owner, title=f"Shift {day}")
            await session.execute(
                update(Opportunity)
                .where(Opportunity.id == opportunity.id)
                .values(created_at=dt.datetime(2026, 1, day + 1, tzinfo=dt.timezone.utc))
            )
            created.append(opportunity.id)

        items = await list_opportunities(session, OpportunityFilters())
        assert [i.id for i in items] == list(reversed(created))

        page = await list_opportunities(session, OpportunityFilters(limit=1, offset=1))
        assert [i.id for i in page] == [created[1]]

    @pytest.mark.asyncio
    async def test_items_are_hydrated(self, session, church, make_user, make_opportunity):
        owner, org = church
        opportunity = await make_opportunity(org, owner)
        volunteer = await make_user("vol")
        await sign_up(session, opportunity.id, volunteer.id)

        [item] = await list_opportunities(session, OpportunityFilters())
        assert item.organization.name == org.name
        assert item.created_by.username == "pastor"
        assert [s.user.username for s in item.volunteer_signups] == ["vol"]
        assert item.current_volunteers == 1


# ---------------------------------------------------------------------------
# Single reads
# ---------------------------------------------------------------------------


class TestGetOpportunity:
    @pytest.mark.asyncio
    async def test_absent_returns_none(self, session):
        assert await get_opportunity(session, uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_by_ids(self, session, church, make_opportunity):
        owner, org = church
        first = await make_opportunity(org, owner)
        second = await make_opportunity(org, owner, title="Second")

        found = await get_opportunities_by_ids(session, [first.id, second.id, uuid.uuid4()])
        assert set(found) == {first.id, second.id}
        assert await get_opportunities_by_ids(session, []) == {}


# ---------------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------------


class TestCreateAndUpdate:
    @pytest.mark.asyncio
    async def test_create_defaults(self, church, make_opportunity):
        owner, org = church
        opportunity = await make_opportunity(org, owner, required_skills=["cooking"])
        assert opportunity.current_volunteers == 0
        assert opportunity.is_active is True
        assert opportunity.created_by_id == owner.id
        assert opportunity.required_skills == ["cooking"]

    @pytest.mark.asyncio
    async def test_create_for_unknown_org(self, church, make_opportunity):
        owner, _org = church

        class _Missing:
            id = uuid.uuid4()

        with pytest.raises(NotFoundError):
            await make_opportunity(_Missing(), owner)

    @pytest.mark.asyncio
    async def test_end_before_start_rejected(self, church, make_opportunity):
        owner, org = church
        with pytest.raises(ValidationError):
            await make_opportunity(org, owner, start_time=dt.time(14, 0), end_time=dt.time(13, 0))

    @pytest.mark.asyncio
    async def test_recurring_needs_pattern(self, church, make_opportunity):
        owner, org = church
        with pytest.raises(ValidationError):
            await make_opportunity(org, owner, is_recurring=True)

        weekly = await make_opportunity(
            org, owner, is_recurring=True, recurring_pattern=RecurringPattern.WEEKLY
        )
        assert weekly.recurring_pattern == "weekly"

    def test_volunteers_needed_must_be_positive(self):
        with pytest.raises(SchemaValidationError):
            OpportunityCreate(
                organization_id=uuid.uuid4(),
                title="t",
                description="d",
                category="Food Service",
                date=dt.date(2026, 1, 1),
                start_time=dt.time(9),
                end_time=dt.time(10),
                volunteers_needed=0,
            )

    @pytest.mark.asyncio
    async def test_partial_update(self, session, church, make_opportunity):
        owner, org = church
        opportunity = await make_opportunity(org, owner)
        updated = await update_opportunity(
            session, opportunity.id, OpportunityUpdate(title="Evening shift", volunteers_needed=8)
        )
        assert updated.title == "Evening shift"
        assert updated.volunteers_needed == 8
        assert updated.category == "Food Service"

    @pytest.mark.asyncio
    async def test_update_cannot_clear_required_field(self, session, church, make_opportunity):
        owner, org = church
        opportunity = await make_opportunity(org, owner)
        with pytest.raises(ValidationError):
            await update_opportunity(session, opportunity.id, OpportunityUpdate(title=None))

    @pytest.mark.asyncio
    async def test_update_checks_merged_schedule(self, session, church, make_opportunity):
        owner, org = church
        opportunity = await make_opportunity(org, owner)
        with pytest.raises(ValidationError):
            await update_opportunity(
                session, opportunity.id, OpportunityUpdate(end_time=dt.time(8, 0))
            )

    @pytest.mark.asyncio
    async def test_update_unknown(self, session):
        with pytest.raises(NotFoundError):
            await update_opportunity(session, uuid.uuid4(), OpportunityUpdate(title="x"))


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


class TestDeleteOpportunity:
    @pytest.mark.asyncio
    async def test_delete_removes_signups(self, session, church, make_user, make_opportunity):
        owner, org = church
        opportunity = await make_opportunity(org, owner)
        keep = await make_opportunity(org, owner, title="Other")
        for i in range(3):
            volunteer = await make_user(f"vol{i}")
            await sign_up(session, opportunity.id, volunteer.id)
            if i == 0:
                await sign_up(session, keep.id, volunteer.id)

        await delete_opportunity(session, opportunity.id)

        remaining = await session.execute(
            select(func.count(VolunteerSignup.id)).where(
                VolunteerSignup.opportunity_id == opportunity.id
            )
        )
        assert remaining.scalar_one() == 0
        assert await get_opportunity(session, opportunity.id) is None

        others = await session.execute(
            select(func.count(VolunteerSignup.id)).where(VolunteerSignup.opportunity_id == keep.id)
        )
        assert others.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_delete_unknown_is_quiet(self, session):
        await delete_opportunity(session, uuid.uuid4())
