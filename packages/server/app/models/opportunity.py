"""Volunteer opportunity model."""

import datetime as dt
from typing import List, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Opportunity(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "opportunities"
    __table_args__ = (
        sa.CheckConstraint("volunteers_needed >= 1", name="ck_opportunities_volunteers_needed"),
    )

    title: str = Field(nullable=False, max_length=255)
    description: str = Field(nullable=False)
    category: str = Field(nullable=False, index=True, max_length=100)
    date: dt.date = Field(nullable=False)
    start_time: dt.time = Field(nullable=False)
    end_time: dt.time = Field(nullable=False)
    volunteers_needed: int = Field(nullable=False)
    # Live count of non-cancelled signups; only changed through atomic UPDATEs
    current_volunteers: int = Field(default=0, nullable=False)
    required_skills: List[str] = Field(default_factory=list, sa_type=sa.JSON, nullable=False)
    location: Optional[str] = None
    is_recurring: bool = Field(default=False, nullable=False)
    recurring_pattern: Optional[str] = Field(default=None, max_length=50)  # weekly | biweekly | monthly
    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    created_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    is_active: bool = Field(default=True, nullable=False, index=True)
