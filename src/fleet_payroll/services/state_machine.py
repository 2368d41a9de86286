"""Payroll and paystub state machines with transition validation."""

from __future__ import annotations

from enum import Enum

from fleet_payroll.exceptions import InvalidTransitionError


class PayrollStatus(str, Enum):
    """Individual payroll status values."""

    DRAFT = "DRAFT"
    CALCULATED = "CALCULATED"
    REVIEWED = "REVIEWED"
    APPROVED = "APPROVED"
    PAID = "PAID"
    EMPTY = "EMPTY"


class PaystubStatus(str, Enum):
    """Paystub status values."""

    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    PAID = "PAID"


class PayrollStateMachine:
    """State machine for individual payroll status.

    Allowed transitions:
    - draft → calculated, empty
    - calculated → draft, reviewed, approved, empty
    - reviewed → draft, calculated, approved
    - approved → paid
    - empty → draft, calculated

    Recalculation (aggregation, fuel import, load moves) may move a payroll
    between draft, calculated and empty; approved and paid are final figures.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollStatus.DRAFT: [PayrollStatus.CALCULATED, PayrollStatus.EMPTY],
        PayrollStatus.CALCULATED: [
            PayrollStatus.DRAFT,
            PayrollStatus.REVIEWED,
            PayrollStatus.APPROVED,
            PayrollStatus.EMPTY,
        ],
        PayrollStatus.REVIEWED: [
            PayrollStatus.DRAFT,
            PayrollStatus.CALCULATED,
            PayrollStatus.APPROVED,
        ],
        PayrollStatus.APPROVED: [PayrollStatus.PAID],
        PayrollStatus.PAID: [],  # Terminal state
        PayrollStatus.EMPTY: [PayrollStatus.DRAFT, PayrollStatus.CALCULATED],
    }

    # Statuses whose figures may still be recalculated
    MUTABLE = {
        PayrollStatus.DRAFT,
        PayrollStatus.CALCULATED,
        PayrollStatus.REVIEWED,
        PayrollStatus.EMPTY,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_mutable(cls, status: str) -> bool:
        """Check if the payroll's figures may be recalculated."""
        return status in cls.MUTABLE

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return [str(s.value) for s in cls.VALID_TRANSITIONS.get(current_status, [])]


class PaystubStateMachine:
    """State machine for paystubs.

    Allowed transitions:
    - draft → approved
    - approved → draft (reopen)
    - approved → paid
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PaystubStatus.DRAFT: [PaystubStatus.APPROVED],
        PaystubStatus.APPROVED: [PaystubStatus.DRAFT, PaystubStatus.PAID],
        PaystubStatus.PAID: [],
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def can_refresh(cls, status: str) -> bool:
        """Only draft paystubs may be overwritten by a new snapshot."""
        return status == PaystubStatus.DRAFT
