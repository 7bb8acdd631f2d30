"""Opportunity schemas: create/update payloads, list filters and read models."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field

from .common import RecurringPattern


class OpportunityBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    volunteers_needed: int = Field(..., ge=1)
    required_skills: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    is_recurring: bool = False
    recurring_pattern: Optional[RecurringPattern] = None


class OpportunityCreate(OpportunityBase):
    organization_id: uuid.UUID


class OpportunityUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    date: Optional[dt.date] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    volunteers_needed: Optional[int] = Field(None, ge=1)
    required_skills: Optional[List[str]] = None
    location: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurring_pattern: Optional[RecurringPattern] = None
    is_active: Optional[bool] = None


class OpportunityFilters(BaseModel):
    """Options recognised by the opportunity listing.

    ``is_active`` defaults to True so inactive (completed) opportunities are
    hidden unless asked for; ``None`` lists both.
    """
    organization_id: Optional[uuid.UUID] = None
    category: Optional[str] = None
    is_active: Optional[bool] = True
    limit: int = Field(50, ge=1)
    offset: int = Field(0, ge=0)


class OpportunityRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    category: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    volunteers_needed: int
    current_volunteers: int = 0
    required_skills: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None
    organization_id: uuid.UUID
    created_by_id: uuid.UUID
    is_active: bool = True
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def is_full(self) -> bool:
        """Capacity is advisory: signups past this point are still accepted."""
        return self.current_volunteers >= self.volunteers_needed
