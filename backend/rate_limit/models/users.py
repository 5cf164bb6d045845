"""User accounts referenced as organization owners."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from rate_limit.core.time import utcnow

RUNTIME_ANNOTATION_TYPES = (datetime,)


class User(SQLModel, table=True):
    """Account whose email receives organization limit notifications."""

    __tablename__ = "users"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(index=True)
    display_name: str = ""
    created_at: datetime = Field(default_factory=utcnow)
