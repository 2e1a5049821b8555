"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production models are created as-is;
``StaticPool`` keeps every session on the one in-memory connection.
"""

from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.domain.entities import Actor
from src.domain.enums import BookingStatus, UserRole
from src.infrastructure.database import Base
from src.infrastructure.models import BookingModel, UserModel, VehicleModel
from src.services.lifecycle import BookingLifecycle
from src.services.notifications import BookingNotifier

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh schema per test; yields a session factory bound to it."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def mailer() -> AsyncMock:
    mock = AsyncMock()
    mock.send = AsyncMock(return_value=True)
    return mock


# ── Builders ──────────────────────────────────────────────────────────


async def make_user(
    session: AsyncSession,
    role: UserRole,
    name: str,
    *,
    total_revenue: float = 0.0,
) -> UserModel:
    user = UserModel(
        name=name,
        email=f"{name.lower()}@example.com",
        password_hash="not-a-real-hash",
        role=role,
        total_revenue=total_revenue,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def make_vehicle(
    session: AsyncSession,
    owner: UserModel,
    *,
    driver: Optional[UserModel] = None,
    registration: str = "KA-01-AB-1234",
) -> VehicleModel:
    vehicle = VehicleModel(
        owner_id=owner.id,
        driver_id=driver.id if driver else None,
        make="Toyota",
        model="Prius",
        year=2021,
        registration_number=registration,
    )
    session.add(vehicle)
    await session.commit()
    await session.refresh(vehicle)
    return vehicle


async def make_booking(
    session: AsyncSession,
    customer: UserModel,
    vehicle: VehicleModel,
    *,
    driver: Optional[UserModel] = None,
    status: BookingStatus = BookingStatus.PENDING,
    fare: Optional[float] = None,
) -> BookingModel:
    booking = BookingModel(
        customer_id=customer.id,
        driver_id=driver.id if driver else None,
        vehicle_id=vehicle.id,
        status=status,
        source="Airport",
        destination="Downtown",
        fare=fare,
    )
    session.add(booking)
    await session.commit()
    await session.refresh(booking)
    return booking


def actor_of(user: UserModel) -> Actor:
    return Actor(id=user.id, role=UserRole(user.role))


def make_lifecycle(
    session: AsyncSession,
    mailer,
    background: Optional[BackgroundTasks] = None,
    **kwargs,
) -> BookingLifecycle:
    """
    Lifecycle whose emails queue on *background* until the test runs it.

    Delivery opens its own sessions on the engine behind *session*.
    """
    notifier = BookingNotifier(
        async_sessionmaker(session.bind, class_=AsyncSession, expire_on_commit=False),
        mailer=mailer,
        background=background if background is not None else BackgroundTasks(),
    )
    return BookingLifecycle(session, notifier=notifier, **kwargs)


@pytest_asyncio.fixture
async def fleet(db_session):
    """A small fleet: one owner with a vehicle driven by ``driver``."""
    owner = await make_user(db_session, UserRole.OWNER, "Olivia")
    driver = await make_user(db_session, UserRole.DRIVER, "Dana")
    other_driver = await make_user(db_session, UserRole.DRIVER, "Diego")
    customer = await make_user(db_session, UserRole.CUSTOMER, "Cara")
    vehicle = await make_vehicle(db_session, owner, driver=driver)
    return {
        "owner": owner,
        "driver": driver,
        "other_driver": other_driver,
        "customer": customer,
        "vehicle": vehicle,
    }
