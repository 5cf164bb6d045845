"""Configuration source: organizations with their targets, plan and limits."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from rate_limit.core.logging import get_logger
from rate_limit.db.session import create_engine
from rate_limit.models.organizations import Organization
from rate_limit.models.projects import Project
from rate_limit.models.targets import Target
from rate_limit.models.users import User
from rate_limit.services.rate_limit.errors import ConfigurationSourceError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class OrganizationLimitRecord:
    """One organization joined with its owner email and every target it owns."""

    organization_id: str
    org_name: str
    owner_email: str
    org_plan: str
    org_clean_id: str
    quota_operations_monthly: int
    retention_days: int
    targets: tuple[str, ...] = ()


@dataclass(slots=True)
class _RecordBuilder:
    organization_id: str
    org_name: str
    owner_email: str
    org_plan: str
    org_clean_id: str
    quota_operations_monthly: int
    retention_days: int
    targets: list[str] = field(default_factory=list)

    def build(self) -> OrganizationLimitRecord:
        return OrganizationLimitRecord(
            organization_id=self.organization_id,
            org_name=self.org_name,
            owner_email=self.owner_email,
            org_plan=self.org_plan,
            org_clean_id=self.org_clean_id,
            quota_operations_monthly=self.quota_operations_monthly,
            retention_days=self.retention_days,
            targets=tuple(self.targets),
        )


class OrganizationStorage:
    """Read-only view over the relational store, sharing one pooled connection."""

    def __init__(
        self,
        engine: AsyncEngine | None = None,
        *,
        database_url: str | None = None,
    ) -> None:
        self._engine = engine or create_engine(database_url)
        self._healthy = False

    def is_ready(self) -> bool:
        """Return the last observed connection health without touching the network."""
        return self._healthy

    async def ping(self) -> bool:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("rate_limit.storage.ping_failed", extra={"error": str(exc)})
            self._healthy = False
        else:
            self._healthy = True
        return self._healthy

    async def list_organizations_with_targets_and_limits(self) -> list[OrganizationLimitRecord]:
        """Return every organization with its limits and the ids of all its targets."""
        statement = (
            select(
                Organization.id,
                Organization.name,
                Organization.clean_id,
                Organization.plan_name,
                Organization.limit_operations_monthly,
                Organization.limit_retention_days,
                User.email,
                Target.id.label("target_id"),
            )
            .select_from(Organization)
            .outerjoin(User, User.id == Organization.user_id)
            .outerjoin(Project, Project.org_id == Organization.id)
            .outerjoin(Target, Target.project_id == Project.id)
            .order_by(Organization.id)
        )
        try:
            async with self._engine.connect() as conn:
                rows = (await conn.execute(statement)).all()
        except (SQLAlchemyError, OSError) as exc:
            self._healthy = False
            raise ConfigurationSourceError(f"failed to load organization limits: {exc}") from exc
        self._healthy = True

        builders: dict[str, _RecordBuilder] = {}
        for row in rows:
            org_id = str(row.id)
            builder = builders.get(org_id)
            if builder is None:
                builder = _RecordBuilder(
                    organization_id=org_id,
                    org_name=row.name,
                    owner_email=row.email or "",
                    org_plan=row.plan_name,
                    org_clean_id=row.clean_id,
                    quota_operations_monthly=int(row.limit_operations_monthly),
                    retention_days=int(row.limit_retention_days),
                )
                builders[org_id] = builder
            if row.target_id is not None:
                builder.targets.append(str(row.target_id))
        return [builder.build() for builder in builders.values()]

    async def dispose(self) -> None:
        await self._engine.dispose()
        self._healthy = False
