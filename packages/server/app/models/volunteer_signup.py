"""Volunteer signup: one user's commitment to one opportunity."""

from decimal import Decimal
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin

# Cancelled rows are history; at most one live signup per volunteer per opportunity
ACTIVE_SIGNUP_CLAUSE = sa.text("status != 'cancelled'")


class VolunteerSignup(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "volunteer_signups"
    __table_args__ = (
        sa.Index(
            "uq_volunteer_signups_active",
            "opportunity_id",
            "user_id",
            unique=True,
            postgresql_where=ACTIVE_SIGNUP_CLAUSE,
            sqlite_where=ACTIVE_SIGNUP_CLAUSE,
        ),
    )

    opportunity_id: uuid.UUID = Field(foreign_key="opportunities.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    status: str = Field(nullable=False, default="signed_up", max_length=20)  # signed_up | completed | cancelled
    notes: Optional[str] = None
    hours_worked: Optional[Decimal] = Field(default=None, sa_type=sa.Numeric(4, 2))
