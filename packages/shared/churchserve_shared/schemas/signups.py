"""Volunteer signup schemas and volunteer dashboard statistics."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .common import SignupStatus


class SignupCreateRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)


class SignupStatusUpdate(BaseModel):
    """Request body for PATCH /signups/{signupId}."""
    status: SignupStatus
    hours_worked: Optional[Decimal] = Field(None, ge=0, max_digits=4, decimal_places=2)


class SignupRead(BaseModel):
    id: uuid.UUID
    opportunity_id: uuid.UUID
    user_id: uuid.UUID
    status: SignupStatus
    notes: Optional[str] = None
    hours_worked: Optional[Decimal] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class VolunteerStats(BaseModel):
    hours_volunteered: float = 0.0
    opportunities_completed: int = 0
    churches_served: int = 0
