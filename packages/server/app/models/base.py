"""Column mixins shared by every ChurchServe table."""

import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp_column(index: bool = False, **column_kwargs) -> datetime:
    return Field(
        default_factory=utcnow,
        nullable=False,
        index=index,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now(), **column_kwargs},
    )


class UUIDMixin(SQLModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)


class TimestampMixin(SQLModel):
    created_at: datetime = _timestamp_column(index=True)
    updated_at: datetime = _timestamp_column(onupdate=utcnow)

    def touch(self) -> None:
        """Stamp ``updated_at`` for in-place edits made through the ORM."""
        self.updated_at = utcnow()
