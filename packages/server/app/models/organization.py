"""Organization (church / nonprofit) model."""

from decimal import Decimal
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Organization(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, index=True, max_length=255)
    description: Optional[str] = None
    address: str = Field(nullable=False)
    city: str = Field(nullable=False, max_length=100)
    state: str = Field(nullable=False, max_length=50)
    zip_code: str = Field(nullable=False, max_length=10)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)
    website: Optional[str] = Field(default=None, max_length=255)
    denomination_affiliation: Optional[str] = Field(default=None, max_length=100)
    is_verified: bool = Field(default=False, nullable=False)
    owner_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    latitude: Optional[Decimal] = Field(default=None, sa_type=sa.Numeric(10, 7))
    longitude: Optional[Decimal] = Field(default=None, sa_type=sa.Numeric(10, 7))
