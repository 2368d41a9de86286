"""Pytest fixtures for fleet payroll tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from fleet_payroll.calculators import week_window
from fleet_payroll.database import enable_sqlite_savepoints, make_session_factory
from fleet_payroll.models import Base, Employee, FuelTransaction, Load

# In-memory SQLite, one database per test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

WEEK_10 = week_window(2024, 10)  # 2024-03-04 .. 2024-03-10
WEEK_11 = week_window(2024, 11)  # 2024-03-11 .. 2024-03-17


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def employees(session: AsyncSession) -> dict[int, Employee]:
    """Create test employees.

    7 and 8 are active drivers, 9 is inactive.
    """
    john = Employee(
        id=7,
        name="John Smith",
        status="ACTIVE",
        payment_method="PERCENTAGE",
        driver_percent=Decimal("70.00"),
        company_percent=Decimal("30.00"),
        service_fee_percent=Decimal("0"),
        pay_per_mile_rate=Decimal("0"),
    )
    maria = Employee(
        id=8,
        name="Maria Lopez",
        status="ACTIVE",
        payment_method="PAY_PER_MILE",
        driver_percent=Decimal("0"),
        company_percent=Decimal("0"),
        service_fee_percent=Decimal("0"),
        pay_per_mile_rate=Decimal("0.55"),
    )
    ike = Employee(
        id=9,
        name="Ike Turner",
        status="INACTIVE",
        payment_method="FLAT_RATE",
        driver_percent=Decimal("0"),
        company_percent=Decimal("0"),
        service_fee_percent=Decimal("0"),
        pay_per_mile_rate=Decimal("0"),
    )
    session.add_all([john, maria, ike])
    await session.commit()
    return {7: john, 8: maria, 9: ike}


def _load(
    load_id: int,
    driver_id: int | None,
    delivery_date: date | None,
    gross: str,
    rate: str,
    miles: int,
    status: str = "DELIVERED",
) -> Load:
    return Load(
        id=load_id,
        load_number=f"L-{load_id}",
        driver_id=driver_id,
        driver_name={7: "John Smith", 8: "Maria Lopez"}.get(driver_id),
        delivery_date=delivery_date,
        gross_amount=Decimal(gross),
        driver_rate=Decimal(rate),
        final_miles=miles,
        status=status,
    )


@pytest.fixture
async def loads(session: AsyncSession, employees) -> dict[int, Load]:
    """Create test loads, mostly in 2024-W10.

    Employee 7 has two delivered loads in week 10 with driver rates 200 and
    150, a pending one the same week, and a delivered one in week 11.
    """
    rows = [
        _load(101, 7, date(2024, 3, 5), "1000.00", "200.00", 400),
        _load(102, 7, date(2024, 3, 7), "800.00", "150.00", 300),
        _load(103, 7, date(2024, 3, 8), "500.00", "90.00", 200, status="PENDING"),
        _load(104, 8, date(2024, 3, 6), "1200.00", "300.00", 500),
        _load(105, 7, date(2024, 3, 12), "600.00", "120.00", 250),
        _load(106, None, date(2024, 3, 6), "400.00", "80.00", 150),
    ]
    session.add_all(rows)
    await session.commit()
    return {row.id: row for row in rows}


@pytest.fixture
async def fuel_transactions(session: AsyncSession, employees) -> list[FuelTransaction]:
    """Fuel card purchases in 2024-W10.

    John Smith's two purchases use different capitalisation of his name.
    """
    rows = [
        FuelTransaction(
            invoice="F-1",
            driver_name="John Smith",
            tran_date=date(2024, 3, 5),
            location_name="Pilot #12",
            amount=Decimal("100.00"),
            fees=Decimal("2.50"),
        ),
        FuelTransaction(
            invoice="F-2",
            driver_name="JOHN SMITH",
            tran_date=date(2024, 3, 8),
            location_name=None,
            amount=Decimal("50.00"),
            fees=Decimal("0"),
        ),
        FuelTransaction(
            invoice="F-3",
            driver_name="Maria Lopez",
            tran_date=date(2024, 3, 6),
            location_name="Love's #4",
            amount=Decimal("80.00"),
            fees=Decimal("1.00"),
        ),
        FuelTransaction(
            invoice="F-4",
            driver_name="Unknown Driver",
            tran_date=date(2024, 3, 6),
            location_name="TA #9",
            amount=Decimal("60.00"),
            fees=Decimal("0"),
        ),
        FuelTransaction(
            invoice="F-5",
            driver_name="John Smith",
            tran_date=date(2024, 3, 13),
            location_name="Pilot #12",
            amount=Decimal("70.00"),
            fees=Decimal("0"),
        ),
    ]
    session.add_all(rows)
    await session.commit()
    return rows
