"""
Hydrated read models: entities with their related rows nested in.

The store keeps relations as foreign keys; these shapes are what the API
returns after the server joins and folds them.
"""

from __future__ import annotations

from pydantic import Field

from .opportunities import OpportunityRead
from .organizations import MembershipRead, OrganizationRead
from .signups import SignupRead
from .users import UserRead


class SignupWithUser(SignupRead):
    user: UserRead


class MemberWithUser(MembershipRead):
    user: UserRead


class OpportunityWithDetails(OpportunityRead):
    organization: OrganizationRead
    created_by: UserRead
    volunteer_signups: list[SignupWithUser] = Field(default_factory=list)


class OrganizationWithDetails(OrganizationRead):
    owner: UserRead
    members: list[MemberWithUser] = Field(default_factory=list)
    opportunities: list[OpportunityRead] = Field(default_factory=list)


class SignupWithOpportunity(SignupRead):
    opportunity: OpportunityWithDetails