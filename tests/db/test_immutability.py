"""
Tests for ORM-level salary slip immutability.

Amounts never change after INSERT; status moves only away from
GENERATED; slips are never deleted.
"""

from decimal import Decimal

import pytest

from payroll_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from payroll_kernel.exceptions import ImmutabilityViolationError
from payroll_kernel.models.salary_slip import SalarySlipModel


@pytest.fixture
def slip_model(session, create_employee, create_tax_bracket, generate_slip):
    employee = create_employee(base_salary=Decimal("1000.00"))
    create_tax_bracket("0", "2000", "10")
    slip = generate_slip(employee)
    return session.get(SalarySlipModel, slip.id)


@pytest.mark.parametrize(
    "field, value",
    [
        ("net_payable", Decimal("1.00")),
        ("basic_salary", Decimal("5000.00")),
        ("salary_period", "2024-04"),
        ("slip_reference", "SLIP-tampered"),
        ("deductions_breakdown", []),
    ],
)
def test_amount_fields_are_immutable(session, slip_model, field, value, captured_logs):
    setattr(slip_model, field, value)

    with pytest.raises(ImmutabilityViolationError) as exc_info:
        session.flush()

    assert exc_info.value.code == "IMMUTABILITY_VIOLATION"
    blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
    assert blocked[0]["field"] == field


def test_status_transition_allowed(session, slip_model, deterministic_clock):
    slip_model.status = "paid"
    slip_model.paid_at = deterministic_clock.now()
    session.flush()

    assert session.get(SalarySlipModel, slip_model.id).status == "paid"


def test_payment_details_recorded_with_payment(session, slip_model, deterministic_clock):
    slip_model.status = "paid"
    slip_model.paid_at = deterministic_clock.now()
    slip_model.payment_method = "cheque"
    slip_model.payment_reference = "CHQ-118"
    session.flush()

    assert session.get(SalarySlipModel, slip_model.id).payment_reference == "CHQ-118"


def test_payment_details_need_the_move_to_paid(session, slip_model):
    slip_model.payment_method = "cheque"

    with pytest.raises(ImmutabilityViolationError, match="marked paid"):
        session.flush()


def test_payment_details_blocked_on_cancellation(session, slip_model, deterministic_clock):
    slip_model.status = "cancelled"
    slip_model.cancelled_at = deterministic_clock.now()
    slip_model.payment_reference = "TRX-1"

    with pytest.raises(ImmutabilityViolationError, match="marked paid"):
        session.flush()


def test_final_status_cannot_change(session, slip_model, deterministic_clock):
    slip_model.status = "cancelled"
    slip_model.cancelled_at = deterministic_clock.now()
    session.flush()

    slip_model.status = "generated"
    with pytest.raises(ImmutabilityViolationError, match="final"):
        session.flush()


def test_delete_blocked(session, slip_model):
    session.delete(slip_model)

    with pytest.raises(ImmutabilityViolationError, match="cannot be deleted"):
        session.flush()


def test_listeners_can_be_toggled(session, slip_model):
    unregister_immutability_listeners()
    try:
        slip_model.net_payable = Decimal("1.00")
        session.flush()
    finally:
        register_immutability_listeners()

    slip_model.net_payable = Decimal("2.00")
    with pytest.raises(ImmutabilityViolationError):
        session.flush()
