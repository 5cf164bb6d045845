"""Immutable rate-limit snapshot: organization usage plus the target index."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from rate_limit.schemas.rate_limits import (
    OPERATIONS_REPORTING,
    RateLimitCheckResponse,
    RateLimitInput,
)

ENTERPRISE_PLAN = "ENTERPRISE"
UNLIMITED_QUOTA = 0


def is_limit_exempt(*, plan: str, quota: int) -> bool:
    """Enterprise plans and a zero quota are never limited."""
    return plan == ENTERPRISE_PLAN or quota == UNLIMITED_QUOTA


def derive_operations_usage(*, current: int, quota: int, plan: str) -> RateLimitCheckResponse:
    """Compute the limit state for one organization from its raw counters."""
    limited = False if is_limit_exempt(plan=plan, quota=quota) else current > quota
    # A zero quota has no meaningful ratio; 0.0 keeps it out of threshold checks.
    usage_percentage = current / quota if quota != UNLIMITED_QUOTA else 0.0
    return RateLimitCheckResponse(
        limited=limited,
        usage_percentage=usage_percentage,
        quota=quota,
        current=current,
    )


@dataclass(frozen=True, slots=True)
class OrganizationUsageSnapshot:
    organization_id: str
    organization_name: str
    owner_email: str
    clean_id: str
    plan: str
    retention_in_days: int
    operations: RateLimitCheckResponse

    @classmethod
    def build(
        cls,
        *,
        organization_id: str,
        organization_name: str,
        owner_email: str,
        clean_id: str,
        plan: str,
        quota: int,
        current: int,
        retention_in_days: int,
    ) -> OrganizationUsageSnapshot:
        return cls(
            organization_id=organization_id,
            organization_name=organization_name,
            owner_email=owner_email,
            clean_id=clean_id,
            plan=plan,
            retention_in_days=retention_in_days,
            operations=derive_operations_usage(current=current, quota=quota, plan=plan),
        )

    @property
    def quota(self) -> int:
        return self.operations.quota

    @property
    def current(self) -> int:
        return self.operations.current

    @property
    def limited(self) -> bool:
        return self.operations.limited

    @property
    def usage_percentage(self) -> float:
        return self.operations.usage_percentage


@dataclass(frozen=True, slots=True)
class RateLimitCache:
    """One published snapshot; replaced wholesale, never mutated."""

    organizations: Mapping[str, OrganizationUsageSnapshot] = field(
        default_factory=lambda: MappingProxyType({}),
    )
    target_index: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def freeze(
        cls,
        *,
        organizations: dict[str, OrganizationUsageSnapshot],
        target_index: dict[str, str],
    ) -> RateLimitCache:
        return cls(
            organizations=MappingProxyType(dict(organizations)),
            target_index=MappingProxyType(dict(target_index)),
        )

    def resolve_organization_id(self, request: RateLimitInput) -> str | None:
        if request.entity_type == "organization":
            return request.id
        return self.target_index.get(request.id)

    def organization_for_target(self, target_id: str) -> OrganizationUsageSnapshot | None:
        org_id = self.target_index.get(target_id)
        if org_id is None:
            return None
        return self.organizations.get(org_id)

    def check_limit(self, request: RateLimitInput) -> RateLimitCheckResponse | None:
        """Return the organization's operations state, or None when it cannot be resolved."""
        org_id = self.resolve_organization_id(request)
        if org_id is None:
            return None
        snapshot = self.organizations.get(org_id)
        if snapshot is None or request.kind != OPERATIONS_REPORTING:
            return None
        return snapshot.operations


EMPTY_RATE_LIMIT_CACHE = RateLimitCache()
