"""Schemas for rate-limit check and retention lookups."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

EntityType = Literal["organization", "target"]
OPERATIONS_REPORTING = "operations-reporting"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class RateLimitInput(_CamelModel):
    """Subject of a limit check: an organization or a target resolved to its organization."""

    entity_type: EntityType
    id: str
    kind: str = Field(default=OPERATIONS_REPORTING, alias="type")


class RateLimitCheckResponse(_CamelModel):
    """Hard-limit state and usage of one organization.

    `usage_percentage` is a ratio (1.0 == quota reached) and can exceed 1.0 for
    organizations that are exempt from limiting.
    """

    limited: bool
    usage_percentage: float
    quota: int
    current: int


UNKNOWN_RATE_LIMIT = RateLimitCheckResponse(
    limited=False,
    usage_percentage=0.0,
    quota=-1,
    current=-1,
)


class RetentionRead(_CamelModel):
    retention_in_days: int
