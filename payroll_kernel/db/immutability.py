"""
ORM-Level Immutability Enforcement for salary slips.

===============================================================================
WHY THIS EXISTS
===============================================================================

A generated salary slip is a payroll record that employees, payroll staff
and auditors rely on.  Its amounts must never change after generation;
corrections are made by cancelling the slip and generating a new one, which
leaves a visible trail.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check the rules:

    session.flush()
         |
         v
    [before_update event] --> _check_salary_slip_immutability() --> ImmutabilityViolationError
         |
    [before_delete event] --> _check_salary_slip_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
RULES
===============================================================================

Field group                  | Rule
-----------------------------|-----------------------------------------------
status, paid_at, cancelled_at| May change only while leaving GENERATED
payment_method, _reference   | Only together with the move to PAID
updated_at                   | Audit metadata, always allowed
everything else              | Never changes after INSERT
DELETE                       | Never allowed

Status service code checks transitions first and raises
InvalidSlipTransitionError; these listeners catch anything that bypasses it.

===============================================================================
USAGE
===============================================================================

Registered by ``init_engine_from_url()``.  To temporarily disable (TESTS
ONLY):

    from payroll_kernel.db.immutability import unregister_immutability_listeners
    unregister_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from payroll_kernel.exceptions import ImmutabilityViolationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Written only by the move to PAID
SALARY_SLIP_PAYMENT_FIELDS = frozenset({"payment_method", "payment_reference"})

# Fields that may change while a slip leaves the GENERATED status
SALARY_SLIP_STATUS_FIELDS = frozenset({
    "status",
    "paid_at",
    "cancelled_at",
}) | SALARY_SLIP_PAYMENT_FIELDS

SALARY_SLIP_AUDIT_FIELDS = frozenset({"updated_at"})


def _status_value(status) -> str:
    return getattr(status, "value", status)


def _blocked(target, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "SalarySlip",
            "entity_id": str(target.id),
            "slip_reference": target.slip_reference,
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="SalarySlip",
        entity_id=str(target.id),
        reason=reason,
    )


def _check_salary_slip_immutability(mapper, connection, target):
    """
    Prevent changes to persisted salary slip amounts.

    Logic:
        1. Any change outside the status, payment and audit fields: block.
        2. Status fields may only change when the previous status was
           GENERATED (a paid or cancelled slip is final).
        3. Payment details may only be written by the move to PAID.
    """
    from payroll_kernel.models.salary_slip import SalarySlipModel

    if not isinstance(target, SalarySlipModel):
        return

    insp = inspect(target)
    status_changing = False
    payment_changing = False
    for attr in insp.attrs:
        if attr.key in SALARY_SLIP_AUDIT_FIELDS:
            continue
        if not attr.history.has_changes():
            continue
        if attr.key in SALARY_SLIP_STATUS_FIELDS:
            status_changing = True
            payment_changing = payment_changing or attr.key in SALARY_SLIP_PAYMENT_FIELDS
            continue
        _blocked(
            target,
            "UPDATE",
            f"Cannot modify field '{attr.key}' on a generated salary slip",
            field=attr.key,
        )

    if not status_changing:
        return

    status_history = get_history(target, "status")
    if status_history.deleted:
        previous = _status_value(status_history.deleted[0])
    else:
        previous = _status_value(target.status)

    if previous != "generated":
        _blocked(
            target,
            "UPDATE",
            f"Salary slip status '{previous}' is final",
            field="status",
        )

    if payment_changing and _status_value(target.status) != "paid":
        _blocked(
            target,
            "UPDATE",
            "Payment details can only be recorded when a slip is marked paid",
            field="payment_method",
        )


def _check_salary_slip_delete(mapper, connection, target):
    """Salary slips are never deleted; cancel them instead."""
    from payroll_kernel.models.salary_slip import SalarySlipModel

    if not isinstance(target, SalarySlipModel):
        return

    _blocked(target, "DELETE", "Salary slips cannot be deleted")


def register_immutability_listeners():
    """
    Register salary slip immutability listeners.

    Safe to call more than once.
    """
    from payroll_kernel.models.salary_slip import SalarySlipModel

    if not event.contains(SalarySlipModel, "before_update", _check_salary_slip_immutability):
        event.listen(SalarySlipModel, "before_update", _check_salary_slip_immutability)
    if not event.contains(SalarySlipModel, "before_delete", _check_salary_slip_delete):
        event.listen(SalarySlipModel, "before_delete", _check_salary_slip_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    from payroll_kernel.models.salary_slip import SalarySlipModel

    _safe_remove_listener(SalarySlipModel, "before_update", _check_salary_slip_immutability)
    _safe_remove_listener(SalarySlipModel, "before_delete", _check_salary_slip_delete)
