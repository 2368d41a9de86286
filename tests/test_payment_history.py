"""Tests for payment method history maintenance."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from fleet_payroll.calculators import PaymentMethodResolver
from fleet_payroll.exceptions import NotFoundError, ValidationError
from fleet_payroll.models import AuditEvent, Employee, PaymentMethodHistory
from fleet_payroll.services import PaymentHistoryService


class TestRecordChange:
    async def test_first_change_opens_entry(self, session, employees):
        service = PaymentHistoryService(session)

        entry = await service.record_change(
            7,
            "PAY_PER_MILE",
            date(2024, 3, 1),
            pay_per_mile_rate=Decimal("0.62"),
            note="Switched to mileage",
            created_by="dispatcher",
        )

        assert entry.id is not None
        assert entry.end_date is None
        assert entry.created_by == "dispatcher"

        employee = await session.get(Employee, 7)
        assert employee.payment_method == "PAY_PER_MILE"
        assert employee.pay_per_mile_rate == Decimal("0.62")
        assert employee.updated_by == "dispatcher"

    async def test_change_closes_open_entry(self, session, employees):
        service = PaymentHistoryService(session)
        first = await service.record_change(7, "PAY_PER_MILE", date(2024, 1, 1))
        second = await service.record_change(
            7, "PERCENTAGE", date(2024, 3, 1), driver_percent=Decimal("68")
        )
        await session.commit()

        await session.refresh(first)
        assert first.end_date == date(2024, 3, 1)
        assert second.end_date is None

        open_rows = (
            await session.execute(
                select(PaymentMethodHistory).where(
                    PaymentMethodHistory.employee_id == 7,
                    PaymentMethodHistory.end_date.is_(None),
                )
            )
        ).scalars().all()
        assert [row.id for row in open_rows] == [second.id]

    async def test_resolver_sees_both_periods(self, session, employees):
        service = PaymentHistoryService(session)
        await service.record_change(
            7, "PAY_PER_MILE", date(2024, 1, 1), pay_per_mile_rate=Decimal("0.6")
        )
        await service.record_change(
            7, "PERCENTAGE", date(2024, 3, 1), driver_percent=Decimal("68")
        )

        resolver = PaymentMethodResolver(session)
        before = await resolver.resolve(7, date(2024, 2, 29))
        after = await resolver.resolve(7, date(2024, 3, 1))

        assert before.payment_method == "PAY_PER_MILE"
        assert after.payment_method == "PERCENTAGE"

    async def test_records_audit_event(self, session, employees):
        entry = await PaymentHistoryService(session).record_change(
            7, "FLAT_RATE", date(2024, 3, 1), created_by="ops"
        )

        events = (await session.execute(select(AuditEvent))).scalars().all()
        assert len(events) == 1
        assert events[0].action == "PAYMENT_METHOD_CHANGED"
        assert events[0].entity_id == 7
        assert events[0].details["history_id"] == entry.id

    async def test_rejects_unknown_method(self, session, employees):
        with pytest.raises(ValidationError):
            await PaymentHistoryService(session).record_change(7, "HOURLY", date(2024, 3, 1))

    async def test_rejects_backdating_before_open_entry(self, session, employees):
        service = PaymentHistoryService(session)
        await service.record_change(7, "PAY_PER_MILE", date(2024, 3, 1))
        await session.commit()

        with pytest.raises(ValidationError):
            await service.record_change(7, "PERCENTAGE", date(2024, 2, 1))

        employee = await session.get(Employee, 7, populate_existing=True)
        assert employee.payment_method == "PAY_PER_MILE"

    async def test_unknown_employee(self, session, employees):
        with pytest.raises(NotFoundError):
            await PaymentHistoryService(session).record_change(99, "PERCENTAGE", date(2024, 3, 1))


class TestMaintainHistory:
    async def test_list_newest_first(self, session, employees):
        service = PaymentHistoryService(session)
        await service.record_change(7, "PAY_PER_MILE", date(2024, 1, 1))
        await service.record_change(7, "PERCENTAGE", date(2024, 3, 1))

        history = await service.list_history(7)
        assert [h.effective_date for h in history] == [date(2024, 3, 1), date(2024, 1, 1)]

    async def test_list_unknown_employee(self, session, employees):
        with pytest.raises(NotFoundError):
            await PaymentHistoryService(session).list_history(99)

    async def test_update_note_and_end_date(self, session, employees):
        service = PaymentHistoryService(session)
        entry = await service.record_change(7, "PAY_PER_MILE", date(2024, 1, 1))

        updated = await service.update_entry(
            entry.id, note="Ended early", end_date=date(2024, 2, 1)
        )
        assert updated.note == "Ended early"
        assert updated.end_date == date(2024, 2, 1)

    async def test_update_rejects_end_before_effective(self, session, employees):
        service = PaymentHistoryService(session)
        entry = await service.record_change(7, "PAY_PER_MILE", date(2024, 1, 1))

        with pytest.raises(ValidationError):
            await service.update_entry(entry.id, end_date=date(2023, 12, 31))

    async def test_delete(self, session, employees):
        service = PaymentHistoryService(session)
        entry = await service.record_change(7, "PAY_PER_MILE", date(2024, 1, 1))

        await service.delete_entry(entry.id)

        assert await service.list_history(7) == []
        with pytest.raises(NotFoundError):
            await service.delete_entry(entry.id)
