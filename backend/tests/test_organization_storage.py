# ruff: noqa: S101
from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from rate_limit.models import Organization, Project, Target, User
from rate_limit.services.rate_limit.errors import ConfigurationSourceError
from rate_limit.services.rate_limit.storage import OrganizationStorage


async def _create_schema(engine: AsyncEngine) -> None:
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)


@pytest.mark.asyncio
async def test_lists_organizations_with_owner_email_and_all_targets() -> None:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    await _create_schema(engine)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    owner = User(id=uuid4(), email="owner@acme.dev", display_name="Owner")
    acme = Organization(
        id=uuid4(),
        clean_id="acme",
        name="Acme",
        user_id=owner.id,
        plan_name="PRO",
        limit_operations_monthly=5_000_000,
        limit_retention_days=90,
    )
    empty = Organization(
        id=uuid4(),
        clean_id="empty",
        name="Empty",
        user_id=owner.id,
        plan_name="HOBBY",
        limit_operations_monthly=1_000_000,
        limit_retention_days=7,
    )
    api = Project(id=uuid4(), org_id=acme.id, clean_id="api", name="API")
    web = Project(id=uuid4(), org_id=acme.id, clean_id="web", name="Web")
    targets = [
        Target(id=uuid4(), project_id=api.id, clean_id="production", name="production"),
        Target(id=uuid4(), project_id=api.id, clean_id="staging", name="staging"),
        Target(id=uuid4(), project_id=web.id, clean_id="production", name="production"),
    ]

    async with session_maker() as session:
        session.add(owner)
        session.add(acme)
        session.add(empty)
        session.add(api)
        session.add(web)
        for target in targets:
            session.add(target)
        await session.commit()

    storage = OrganizationStorage(engine)
    records = {record.organization_id: record for record in await storage.list_organizations_with_targets_and_limits()}

    assert set(records) == {str(acme.id), str(empty.id)}
    acme_record = records[str(acme.id)]
    assert acme_record.org_name == "Acme"
    assert acme_record.owner_email == "owner@acme.dev"
    assert acme_record.org_plan == "PRO"
    assert acme_record.org_clean_id == "acme"
    assert acme_record.quota_operations_monthly == 5_000_000
    assert acme_record.retention_days == 90
    assert sorted(acme_record.targets) == sorted(str(target.id) for target in targets)
    assert records[str(empty.id)].targets == ()
    assert storage.is_ready() is True

    await storage.dispose()
    assert storage.is_ready() is False


@pytest.mark.asyncio
async def test_ping_reports_connection_health() -> None:
    storage = OrganizationStorage(create_async_engine("sqlite+aiosqlite:///:memory:"))

    assert storage.is_ready() is False
    assert await storage.ping() is True
    assert storage.is_ready() is True
    await storage.dispose()


@pytest.mark.asyncio
async def test_query_failure_raises_configuration_source_error() -> None:
    # No schema: the join query fails on missing tables.
    storage = OrganizationStorage(create_async_engine("sqlite+aiosqlite:///:memory:"))
    await storage.ping()

    with pytest.raises(ConfigurationSourceError):
        await storage.list_organizations_with_targets_and_limits()

    assert storage.is_ready() is False
    await storage.dispose()
