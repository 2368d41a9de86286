"""Tests for moving loads between payroll weeks."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from fleet_payroll.calculators import week_window
from fleet_payroll.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
    WeekLockedError,
)
from fleet_payroll.models import AuditEvent, IndividualPayroll, PayrollLoad
from fleet_payroll.services import (
    FuelIntegrationService,
    LoadMoveService,
    PayrollAggregationService,
    PayrollStore,
    WeekLockService,
)

from tests.conftest import WEEK_10, WEEK_11


@pytest.fixture
async def calculated_week(session, loads):
    await PayrollAggregationService(session).aggregate_week(WEEK_10)
    await session.commit()


class TestMoveLoad:
    async def test_moves_pay_to_target_week(self, session, calculated_week):
        result = await LoadMoveService(session).move_load(
            102, 2024, 11, moved_by="dispatcher", reason="Late paperwork"
        )

        assert (result.from_year, result.from_week) == (2024, 10)
        assert (result.to_year, result.to_week) == (2024, 11)
        assert result.message == "Load L-102 moved to Week 11, 2024"

        store = PayrollStore(session)
        source = await store.get_for_week(7, WEEK_10)
        assert source.id == result.source_payroll_id
        assert source.total_loads == 1
        assert source.base_pay == Decimal("200.00")
        assert source.gross_pay == Decimal("200.00")
        assert source.status == "DRAFT"

        target = await store.get(result.target_payroll_id)
        assert target.week_start_date == WEEK_11.start
        assert target.total_loads == 1
        assert target.base_pay == Decimal("150.00")
        assert target.net_pay == Decimal("150.00")
        assert target.status == "DRAFT"

        snapshots = await store.get_load_snapshots(target.id)
        assert len(snapshots) == 1
        assert snapshots[0].is_moved is True
        assert snapshots[0].final_miles == 0
        assert snapshots[0].notes == "Moved from Week 10, 2024"

    async def test_source_becomes_empty(self, session, calculated_week):
        service = LoadMoveService(session)
        await service.move_load(101, 2024, 11)
        await service.move_load(102, 2024, 11)

        source = await PayrollStore(session).get_for_week(7, WEEK_10)
        assert source.total_loads == 0
        assert source.gross_pay == Decimal("0.00")
        assert source.status == "EMPTY"

    async def test_source_without_snapshot_left_alone(self, session, calculated_week):
        """Load 103 is pending, so week 10 never counted it."""
        store = PayrollStore(session)
        source = await store.get_for_week(7, WEEK_10)
        calculated_at = source.calculated_at

        result = await LoadMoveService(session).move_load(103, 2024, 11)

        source = await store.get(result.source_payroll_id)
        assert source.status == "CALCULATED"
        assert source.calculated_at == calculated_at
        assert source.total_loads == 2
        assert source.base_pay == Decimal("350.00")
        assert source.net_pay == Decimal("350.00")

        target = await store.get(result.target_payroll_id)
        assert target.base_pay == Decimal("90.00")

    async def test_writes_audit_event(self, session, calculated_week):
        await LoadMoveService(session).move_load(102, 2024, 11, moved_by="dispatcher")

        event = await session.scalar(select(AuditEvent).where(AuditEvent.action == "LOAD_MOVED"))
        assert event.entity_type == "load"
        assert event.entity_id == 102
        assert event.actor == "dispatcher"
        assert event.details["from_week"] == 10
        assert event.details["to_week"] == 11
        assert event.details["driver_id"] == 7
        assert event.details["reason"] == "Manual move"
        assert Decimal(event.details["driver_rate"]) == Decimal("150.00")

    async def test_keeps_deductions_in_net_pay(self, session, calculated_week, fuel_transactions):
        await FuelIntegrationService(session).import_week(WEEK_10)

        await LoadMoveService(session).move_load(102, 2024, 11)

        source = await PayrollStore(session).get_for_week(7, WEEK_10)
        assert source.fuel_deductions == Decimal("152.50")
        assert source.net_pay == source.gross_pay - source.total_deductions
        assert source.net_pay == Decimal("47.50")

    async def test_moving_again_uses_moved_week(self, session, calculated_week):
        service = LoadMoveService(session)
        await service.move_load(102, 2024, 11)

        result = await service.move_load(102, 2024, 12)

        assert (result.from_year, result.from_week) == (2024, 11)
        store = PayrollStore(session)
        week_11 = await store.get_for_week(7, WEEK_11)
        assert week_11.total_loads == 0
        snapshot_count = await session.scalar(
            select(func.count(PayrollLoad.id)).where(PayrollLoad.load_id == 102)
        )
        assert snapshot_count == 1

    async def test_move_without_existing_payroll(self, session, loads):
        """A load that was never aggregated can still be moved."""
        result = await LoadMoveService(session).move_load(104, 2024, 12)

        assert result.source_payroll_id is None
        target = await PayrollStore(session).get(result.target_payroll_id)
        assert target.employee_id == 8
        assert target.employee_name == "Maria Lopez"
        assert target.base_pay == Decimal("300.00")


class TestMoveLoadPreconditions:
    async def test_unknown_load(self, session, calculated_week):
        with pytest.raises(NotFoundError):
            await LoadMoveService(session).move_load(9999, 2024, 11)

    async def test_unassigned_load(self, session, calculated_week):
        with pytest.raises(ValidationError, match="Cannot move unassigned loads"):
            await LoadMoveService(session).move_load(106, 2024, 11)

    async def test_invalid_target_week(self, session, calculated_week):
        with pytest.raises(ValidationError):
            await LoadMoveService(session).move_load(102, 2024, 60)

    async def test_target_week_locked(self, session, calculated_week):
        await PayrollAggregationService(session).aggregate_week(WEEK_11)
        await WeekLockService(session).set_lock(WEEK_11, True, "manager")
        await session.commit()

        with pytest.raises(WeekLockedError, match="Target week 11, 2024 is locked") as exc_info:
            await LoadMoveService(session).move_load(102, 2024, 11)
        assert isinstance(exc_info.value, ConflictError)
        assert exc_info.value.status_code == 409

        source = await PayrollStore(session).get_for_week(7, WEEK_10)
        assert source.total_loads == 2

    async def test_current_week_locked(self, session, calculated_week):
        await WeekLockService(session).set_lock(WEEK_10, True, "manager")
        await session.commit()

        with pytest.raises(WeekLockedError, match="Current week 10, 2024 is locked"):
            await LoadMoveService(session).move_load(102, 2024, 11)

        count = await session.scalar(
            select(func.count(IndividualPayroll.id)).where(
                IndividualPayroll.week_start_date == WEEK_11.start
            )
        )
        assert count == 0


class TestMoveLoadAtomicity:
    async def test_failed_move_changes_nothing(self, session, calculated_week):
        """The target payroll is approved, so the move fails after the
        source payroll was already touched."""
        week_12 = week_window(2024, 12)
        service = LoadMoveService(session)
        await service.move_load(101, 2024, 12)
        target = await PayrollStore(session).get_for_week(7, week_12)
        target.status = "APPROVED"
        await session.commit()

        with pytest.raises(ConflictError):
            await service.move_load(102, 2024, 12)

        source = await session.get(
            IndividualPayroll,
            (await PayrollStore(session).get_for_week(7, WEEK_10)).id,
            populate_existing=True,
        )
        assert source.total_loads == 1
        assert source.base_pay == Decimal("150.00")
        snapshots = await PayrollStore(session).get_load_snapshots(source.id)
        assert [s.load_id for s in snapshots] == [102]
