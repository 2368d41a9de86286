"""Tests for one-off payroll adjustments."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from fleet_payroll.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
    WeekLockedError,
)
from fleet_payroll.models import AuditEvent
from fleet_payroll.services import (
    AdjustmentService,
    FuelIntegrationService,
    PayrollAggregationService,
    PayrollStore,
    PaystubService,
    WeekLockService,
)

from tests.conftest import WEEK_10, WEEK_11


@pytest.fixture
async def calculated_week(session, loads):
    await PayrollAggregationService(session).aggregate_week(WEEK_10)
    await session.commit()


async def _john_week_10(session):
    return await PayrollStore(session).get_for_week(7, WEEK_10)


class TestCreateAdjustment:
    async def test_deduction_lowers_net_pay(self, session, calculated_week):
        adjustment = await AdjustmentService(session).create_adjustment(
            employee_id=7,
            category="DEDUCTION",
            name="Damaged pallet",
            amount=Decimal("40"),
            effective_date=date(2024, 3, 6),
            created_by="ops",
        )

        assert adjustment.week_start_date == WEEK_10.start
        assert adjustment.status == "ACTIVE"
        assert adjustment.adjustment_type == "OTHER"

        payroll = await _john_week_10(session)
        assert payroll.gross_pay == Decimal("350.00")
        assert payroll.other_deductions == Decimal("40.00")
        assert payroll.total_deductions == Decimal("40.00")
        assert payroll.net_pay == Decimal("310.00")
        assert payroll.status == "CALCULATED"

    async def test_bonus_raises_gross_pay(self, session, calculated_week):
        await AdjustmentService(session).create_adjustment(
            employee_id=7,
            category="BONUS",
            name="Safety bonus",
            amount=Decimal("50"),
            effective_date=date(2024, 3, 8),
        )

        payroll = await _john_week_10(session)
        assert payroll.base_pay == Decimal("350.00")
        assert payroll.bonus_amount == Decimal("50.00")
        assert payroll.gross_pay == Decimal("400.00")
        assert payroll.net_pay == Decimal("400.00")

    async def test_reimbursement_and_correction(self, session, calculated_week):
        service = AdjustmentService(session)
        await service.create_adjustment(
            7, "REIMBURSEMENT", "Scale ticket", Decimal("12.50"), date(2024, 3, 5)
        )
        await service.create_adjustment(
            7, "CORRECTION", "Missed detention", Decimal("30"), date(2024, 3, 5)
        )

        payroll = await _john_week_10(session)
        assert payroll.reimbursements == Decimal("12.50")
        assert payroll.other_earnings == Decimal("30.00")
        assert payroll.gross_pay == Decimal("392.50")

    async def test_explicit_week_start_wins(self, session, calculated_week):
        adjustment = await AdjustmentService(session).create_adjustment(
            7,
            "DEDUCTION",
            "Toll",
            Decimal("9"),
            effective_date=date(2024, 3, 6),
            week_start_date=date(2024, 3, 13),
        )

        assert adjustment.week_start_date == WEEK_11.start
        payroll = await _john_week_10(session)
        assert payroll.other_deductions == Decimal("0.00")

    async def test_kept_by_fuel_import(self, session, calculated_week, fuel_transactions):
        await AdjustmentService(session).create_adjustment(
            7, "DEDUCTION", "Cash advance repayment", Decimal("47.50"), date(2024, 3, 6)
        )

        await FuelIntegrationService(session).import_week(WEEK_10)

        payroll = await _john_week_10(session)
        assert payroll.fuel_deductions == Decimal("152.50")
        assert payroll.other_deductions == Decimal("47.50")
        assert payroll.total_deductions == Decimal("200.00")
        assert payroll.net_pay == Decimal("150.00")

    async def test_picked_up_by_later_aggregation(self, session, loads):
        """An adjustment made before the week's payroll exists still counts."""
        await AdjustmentService(session).create_adjustment(
            7, "BONUS", "Referral", Decimal("25"), date(2024, 3, 12)
        )

        await PayrollAggregationService(session).aggregate_week(WEEK_11)

        payroll = await PayrollStore(session).get_for_week(7, WEEK_11)
        assert payroll.base_pay == Decimal("120.00")
        assert payroll.bonus_amount == Decimal("25.00")
        assert payroll.gross_pay == Decimal("145.00")
        assert payroll.net_pay == payroll.gross_pay - payroll.total_deductions

    async def test_copied_onto_paystub(self, session, calculated_week):
        await AdjustmentService(session).create_adjustment(
            7, "BONUS", "Safety bonus", Decimal("50"), date(2024, 3, 8)
        )

        payroll = await _john_week_10(session)
        await PaystubService(session).generate(payroll_ids=[payroll.id])

        paystub = await PaystubService(session).get_for_payroll(payroll.id)
        assert paystub.bonus_amount == Decimal("50.00")
        assert paystub.gross_pay == Decimal("400.00")

    async def test_writes_audit_event(self, session, calculated_week):
        adjustment = await AdjustmentService(session).create_adjustment(
            7, "DEDUCTION", "Toll", Decimal("9"), date(2024, 3, 6), created_by="ops"
        )

        event = await session.scalar(
            select(AuditEvent).where(AuditEvent.action == "ADJUSTMENT_CREATED")
        )
        assert event.entity_id == adjustment.id
        assert event.actor == "ops"


class TestAdjustmentGuards:
    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    async def test_amount_must_be_positive(self, session, employees, amount):
        with pytest.raises(ValidationError, match="positive"):
            await AdjustmentService(session).create_adjustment(
                7, "DEDUCTION", "Toll", amount, date(2024, 3, 6)
            )

    async def test_unknown_category(self, session, employees):
        with pytest.raises(ValidationError, match="Invalid category"):
            await AdjustmentService(session).create_adjustment(
                7, "ADVANCE", "Cash", Decimal("100"), date(2024, 3, 6)
            )

    async def test_unknown_employee(self, session, employees):
        with pytest.raises(NotFoundError):
            await AdjustmentService(session).create_adjustment(
                999, "BONUS", "Bonus", Decimal("10"), date(2024, 3, 6)
            )

    async def test_locked_week_refused(self, session, calculated_week):
        await WeekLockService(session).set_lock(WEEK_10, True, "manager")

        with pytest.raises(WeekLockedError):
            await AdjustmentService(session).create_adjustment(
                7, "DEDUCTION", "Toll", Decimal("9"), date(2024, 3, 6)
            )

    async def test_approved_payroll_refused(self, session, calculated_week):
        payroll = await _john_week_10(session)
        payroll.status = "APPROVED"
        await session.flush()

        with pytest.raises(ConflictError, match="APPROVED"):
            await AdjustmentService(session).create_adjustment(
                7, "BONUS", "Bonus", Decimal("10"), date(2024, 3, 6)
            )
        assert payroll.gross_pay == Decimal("350.00")


class TestUpdateAndDelete:
    async def test_cancel_removes_from_totals(self, session, calculated_week):
        service = AdjustmentService(session)
        adjustment = await service.create_adjustment(
            7, "DEDUCTION", "Toll", Decimal("40"), date(2024, 3, 6)
        )

        await service.update_adjustment(adjustment.id, status="CANCELLED", updated_by="ops")

        payroll = await _john_week_10(session)
        assert payroll.other_deductions == Decimal("0.00")
        assert payroll.net_pay == Decimal("350.00")

    async def test_amount_change(self, session, calculated_week):
        service = AdjustmentService(session)
        adjustment = await service.create_adjustment(
            7, "DEDUCTION", "Toll", Decimal("40"), date(2024, 3, 6)
        )

        await service.update_adjustment(adjustment.id, amount=Decimal("15"))

        payroll = await _john_week_10(session)
        assert payroll.net_pay == Decimal("335.00")

    async def test_invalid_status(self, session, calculated_week):
        service = AdjustmentService(session)
        adjustment = await service.create_adjustment(
            7, "DEDUCTION", "Toll", Decimal("40"), date(2024, 3, 6)
        )

        with pytest.raises(ValidationError):
            await service.update_adjustment(adjustment.id, status="VOID")

    async def test_delete(self, session, calculated_week):
        service = AdjustmentService(session)
        adjustment = await service.create_adjustment(
            7, "BONUS", "Bonus", Decimal("40"), date(2024, 3, 6)
        )

        await service.delete_adjustment(adjustment.id, deleted_by="ops")

        payroll = await _john_week_10(session)
        assert payroll.gross_pay == Decimal("350.00")
        with pytest.raises(NotFoundError):
            await service.get_adjustment(adjustment.id)


class TestListAdjustments:
    async def test_totals_by_category(self, session, calculated_week):
        service = AdjustmentService(session)
        await service.create_adjustment(7, "DEDUCTION", "Toll", Decimal("9"), date(2024, 3, 6))
        await service.create_adjustment(7, "DEDUCTION", "Scale", Decimal("11"), date(2024, 3, 7))
        await service.create_adjustment(7, "BONUS", "Bonus", Decimal("50"), date(2024, 3, 8))
        await service.create_adjustment(8, "BONUS", "Bonus", Decimal("20"), date(2024, 3, 8))

        listing = await service.list_adjustments(employee_id=7, week_start=WEEK_10.start)

        assert len(listing.items) == 3
        assert listing.items[0].name == "Bonus"
        assert listing.total_amount == Decimal("70.00")
        assert listing.category_totals == {
            "DEDUCTION": Decimal("20.00"),
            "BONUS": Decimal("50.00"),
        }

        bonuses = await service.list_adjustments(category="BONUS")
        assert {a.employee_id for a in bonuses.items} == {7, 8}
