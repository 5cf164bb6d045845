"""Organization rows carrying plan, quota and retention limits."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from rate_limit.core.time import utcnow

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Organization(SQLModel, table=True):
    """Billing tenant; `limit_operations_monthly == 0` means unlimited."""

    __tablename__ = "organizations"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    clean_id: str = Field(index=True)
    name: str
    user_id: UUID = Field(foreign_key="users.id", index=True)
    plan_name: str = Field(default="HOBBY")
    limit_operations_monthly: int = Field(default=1_000_000, ge=0)
    limit_retention_days: int = Field(default=7, ge=1)
    created_at: datetime = Field(default_factory=utcnow)
