"""Projects grouping targets under an organization."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from rate_limit.core.time import utcnow

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Project(SQLModel, table=True):
    __tablename__ = "projects"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    org_id: UUID = Field(foreign_key="organizations.id", index=True)
    clean_id: str
    name: str
    created_at: datetime = Field(default_factory=utcnow)
