"""
Organization service: creation with owner membership, details, updates and
membership management.
"""

from __future__ import annotations

import uuid

import pytest
from sqlmodel import select

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.organization_member import OrganizationMember
from app.services import organizations as org_service
from churchserve_shared.schemas.common import MemberRole
from churchserve_shared.schemas.organizations import OrgCreateRequest, OrgUpdateRequest


# ---------------------------------------------------------------------------
# Schema validation tests (no DB needed)
# ---------------------------------------------------------------------------

class TestOrgCreateRequestValidation:
    def test_required_address_fields(self):
        with pytest.raises(Exception):
            OrgCreateRequest(name="Grace", address="1 Main", city="Springfield", state="IL")

    def test_email_must_be_valid(self):
        with pytest.raises(Exception):
            OrgCreateRequest(
                name="Grace", address="1 Main", city="Springfield", state="IL",
                zip_code="62701", email="not-an-email",
            )

    def test_latitude_range(self):
        with pytest.raises(Exception):
            OrgCreateRequest(
                name="Grace", address="1 Main", city="Springfield", state="IL",
                zip_code="62701", latitude=91,
            )


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

class TestCreateOrganization:
    @pytest.mark.asyncio
    async def test_exactly_one_owner_membership(self, session, make_user, make_org):
        owner = await make_user("pastor")
        org = await make_org(owner)

        result = await session.execute(
            select(OrganizationMember).where(OrganizationMember.organization_id == org.id)
        )
        members = result.scalars().all()
        assert len(members) == 1
        assert members[0].user_id == owner.id
        assert members[0].role == MemberRole.OWNER.value
        assert org.owner_id == owner.id
        assert org.is_verified is False

    @pytest.mark.asyncio
    async def test_unknown_owner(self, session, make_org):
        class _Ghost:
            id = uuid.uuid4()

        with pytest.raises(NotFoundError):
            await make_org(_Ghost())


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReadOrganization:
    @pytest.mark.asyncio
    async def test_details(self, session, make_user, make_org, make_opportunity):
        owner = await make_user("pastor")
        org = await make_org(owner)
        await make_opportunity(org, owner)

        details = await org_service.get_organization(org.id, session)
        assert details.owner.username == "pastor"
        assert [m.user.username for m in details.members] == ["pastor"]
        assert len(details.opportunities) == 1

    @pytest.mark.asyncio
    async def test_absent(self, session):
        assert await org_service.get_organization(uuid.uuid4(), session) is None

    @pytest.mark.asyncio
    async def test_user_organizations(self, session, make_user, make_org):
        owner = await make_user("pastor")
        helper = await make_user("helper")
        first = await make_org(owner, name="Alpha Chapel")
        second = await make_org(helper, name="Beta Church")
        await org_service.add_organization_member(second.id, owner.id, MemberRole.ADMIN, session)

        items = await org_service.get_user_organizations(owner.id, session)
        assert [i.organization.name for i in items] == ["Alpha Chapel", "Beta Church"]
        assert [i.membership.role for i in items] == [MemberRole.OWNER, MemberRole.ADMIN]
        assert items[0].organization.id == first.id

    @pytest.mark.asyncio
    async def test_by_owner(self, session, make_user, make_org):
        owner = await make_user("pastor")
        await make_org(owner, name="Zion")
        await make_org(owner, name="Bethel")
        orgs = await org_service.get_organizations_by_owner(owner.id, session)
        assert [o.name for o in orgs] == ["Bethel", "Zion"]


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------

class TestUpdateOrganization:
    @pytest.mark.asyncio
    async def test_partial_update(self, session, make_user, make_org):
        owner = await make_user("pastor")
        org = await make_org(owner)
        updated = await org_service.update_organization(
            org.id, OrgUpdateRequest(phone="555-0100"), session
        )
        assert updated.phone == "555-0100"
        assert updated.name == "Grace Community Church"

    @pytest.mark.asyncio
    async def test_cannot_clear_name(self, session, make_user, make_org):
        owner = await make_user("pastor")
        org = await make_org(owner)
        with pytest.raises(ValidationError):
            await org_service.update_organization(org.id, OrgUpdateRequest(name=None), session)

    @pytest.mark.asyncio
    async def test_unknown(self, session):
        with pytest.raises(NotFoundError):
            await org_service.update_organization(uuid.uuid4(), OrgUpdateRequest(), session)

    @pytest.mark.asyncio
    async def test_verify(self, session, make_user, make_org):
        owner = await make_user("pastor")
        org = await make_org(owner)
        verified = await org_service.verify_organization(org.id, session)
        assert verified.is_verified is True


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

class TestMembers:
    @pytest.mark.asyncio
    async def test_add_change_remove(self, session, make_user, make_org):
        owner = await make_user("pastor")
        helper = await make_user("helper")
        org = await make_org(owner)

        await org_service.add_organization_member(org.id, helper.id, MemberRole.MEMBER, session)
        changed = await org_service.update_member_role(org.id, helper.id, MemberRole.ADMIN, session)
        assert changed.role == MemberRole.ADMIN.value

        await org_service.remove_organization_member(org.id, helper.id, session)
        members = await org_service.get_organization_members(org.id, session)
        assert [m.user_id for m in members] == [owner.id]

    @pytest.mark.asyncio
    async def test_duplicate_member(self, session, make_user, make_org):
        owner = await make_user("pastor")
        helper = await make_user("helper")
        org = await make_org(owner)
        await org_service.add_organization_member(org.id, helper.id, MemberRole.MEMBER, session)
        with pytest.raises(ConflictError):
            await org_service.add_organization_member(org.id, helper.id, MemberRole.ADMIN, session)

    @pytest.mark.asyncio
    async def test_second_owner_rejected(self, session, make_user, make_org):
        owner = await make_user("pastor")
        helper = await make_user("helper")
        org = await make_org(owner)
        with pytest.raises(ValidationError):
            await org_service.add_organization_member(org.id, helper.id, MemberRole.OWNER, session)

    @pytest.mark.asyncio
    async def test_owner_membership_is_fixed(self, session, make_user, make_org):
        owner = await make_user("pastor")
        org = await make_org(owner)
        with pytest.raises(ValidationError):
            await org_service.update_member_role(org.id, owner.id, MemberRole.MEMBER, session)
        with pytest.raises(ValidationError):
            await org_service.remove_organization_member(org.id, owner.id, session)

    @pytest.mark.asyncio
    async def test_unknown_user(self, session, make_user, make_org):
        owner = await make_user("pastor")
        org = await make_org(owner)
        with pytest.raises(NotFoundError):
            await org_service.add_organization_member(org.id, uuid.uuid4(), MemberRole.MEMBER, session)
