"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from rate_limit.models.organizations import Organization
from rate_limit.models.projects import Project
from rate_limit.models.targets import Target
from rate_limit.models.users import User

__all__ = [
    "Organization",
    "Project",
    "Target",
    "User",
]
