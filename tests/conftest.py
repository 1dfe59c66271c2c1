"""Shared fixtures: a throwaway sqlite database per test and a few builders."""

import uuid
from datetime import date
from decimal import Decimal

import pytest

import models.event_listener  # noqa: F401
from core.breaker import breaker
from core.get_db import Base, build_engine, build_session_factory
from models.enums import LeaseStatus, PaymentPlan, PropertyStatus
from models.models import Lease
from models.utils import calculate_expiry
from repos.property_repo import PropertyRepo


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_breaker():
    breaker.reset()
    yield
    breaker.reset()


@pytest.fixture
async def engine(tmp_path):
    # a file database so that separate sessions see each other's commits
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'lease_engine.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_property(db):
    async def _make(status: PropertyStatus = PropertyStatus.AVAILABLE):
        return await PropertyRepo(db).create(
            owner_id=uuid.uuid4(), title="2 bedroom flat, Lekki", status=status
        )

    return _make


@pytest.fixture
def make_lease(db, make_property):
    """Insert a lease directly, bypassing checkout."""

    async def _make(
        start: date,
        months: int = 12,
        status: LeaseStatus = LeaseStatus.ACTIVE,
        monthly_rent=Decimal("1000.00"),
        prop=None,
        plan: PaymentPlan = PaymentPlan.FLEXI50,
    ):
        prop = prop or await make_property(
            PropertyStatus.RENTED if status == LeaseStatus.ACTIVE else PropertyStatus.AVAILABLE
        )
        lease = Lease(
            property_id=prop.id,
            tenant_id=uuid.uuid4(),
            landlord_id=prop.owner_id,
            monthly_rent=monthly_rent,
            lease_duration_months=months,
            payment_plan=plan,
            lease_start_date=start,
            rent_expiration_date=calculate_expiry(start, months),
            status=status,
        )
        db.add(lease)
        await db.commit()
        await db.refresh(lease)
        return lease

    return _make
