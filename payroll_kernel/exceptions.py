"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll errors have to be handled precisely. A batch run records failures
per employee with a machine-readable reason, and callers decide whether a
failure is "skip and report" (a duplicate slip) or "stop and fix the data"
(an invalid deduction record). Parsing message strings for that is fragile.

Every exception here therefore:
  1. Has its own class (catch by type, not message)
  2. Carries a CODE class attribute (machine-readable, used as the batch
     failure reason code)
  3. Stores its context as attributes (employee_id, period, record_id, ...)

Example:
    try:
        slip = engine.generate(employee, period, brackets)
    except DuplicateSlipError as e:
        report_skip(e.employee_id, e.period, e.existing_reference)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollKernelError (base)
    |
    +-- PeriodError
    |   +-- InvalidPeriodError
    |
    +-- EmployeeError
    |   +-- EmployeeNotFoundError
    |   +-- EmployeeInactiveError
    |
    +-- SlipError
    |   +-- DuplicateSlipError
    |   +-- SlipNotFoundError
    |   +-- InvalidSlipTransitionError
    |
    +-- TaxError
    |   +-- MisconfiguredTaxTableError
    |
    +-- CompensationError
    |   +-- InvalidRecordError
    |
    +-- PersistenceError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Period          | INVALID_PERIOD              | Bad month/year or "YYYY-MM" string
----------------|-----------------------------|-----------------------------------------
Employee        | EMPLOYEE_NOT_FOUND          | Roster has no such employee id
                | EMPLOYEE_INACTIVE           | Employee is not active
----------------|-----------------------------|-----------------------------------------
Slip            | DUPLICATE_SLIP              | Non-cancelled slip exists for period
                | SLIP_NOT_FOUND              | Unknown slip id or reference
                | INVALID_SLIP_TRANSITION     | e.g. paid -> cancelled
----------------|-----------------------------|-----------------------------------------
Tax             | MISCONFIGURED_TAX_TABLE     | Strict mode: no/ambiguous bracket
----------------|-----------------------------|-----------------------------------------
Compensation    | INVALID_RECORD              | Percentage outside [0,100], negative
                |                             | fixed amount, unknown calculation type
----------------|-----------------------------|-----------------------------------------
Persistence     | PERSISTENCE_ERROR           | Storage failure while writing a slip
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Modifying amounts of a persisted slip

===============================================================================
"""


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


# Period-related exceptions


class PeriodError(PayrollKernelError):
    """Base exception for salary period errors."""

    code: str = "PERIOD_ERROR"


class InvalidPeriodError(PeriodError):
    """Salary period could not be constructed."""

    code: str = "INVALID_PERIOD"

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid salary period {value!r}: {reason}")


# Employee-related exceptions


class EmployeeError(PayrollKernelError):
    """Base exception for roster errors."""

    code: str = "EMPLOYEE_ERROR"


class EmployeeNotFoundError(EmployeeError):
    """Employee id is not present in the roster."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: int):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


class EmployeeInactiveError(EmployeeError):
    """Employee exists but is not active."""

    code: str = "EMPLOYEE_INACTIVE"

    def __init__(self, employee_id: int):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} is inactive")


# Slip-related exceptions


class SlipError(PayrollKernelError):
    """Base exception for salary slip errors."""

    code: str = "SLIP_ERROR"


class DuplicateSlipError(SlipError):
    """
    A non-cancelled slip already exists for the employee and period.

    Recoverable by caller choice (skip or report). Slips are never
    overwritten.
    """

    code: str = "DUPLICATE_SLIP"

    def __init__(
        self,
        employee_id: int,
        period: str,
        existing_reference: str | None = None,
    ):
        self.employee_id = employee_id
        self.period = period
        self.existing_reference = existing_reference
        detail = f" ({existing_reference})" if existing_reference else ""
        super().__init__(
            f"Salary slip already exists for employee {employee_id} "
            f"in period {period}{detail}"
        )


class SlipNotFoundError(SlipError):
    """No slip matches the given id or reference."""

    code: str = "SLIP_NOT_FOUND"

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Salary slip not found: {identifier}")


class InvalidSlipTransitionError(SlipError):
    """Requested status change is not allowed from the current status."""

    code: str = "INVALID_SLIP_TRANSITION"

    def __init__(self, slip_reference: str, from_status: str, to_status: str):
        self.slip_reference = slip_reference
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot move salary slip {slip_reference} "
            f"from {from_status} to {to_status}"
        )


# Tax-related exceptions


class TaxError(PayrollKernelError):
    """Base exception for tax table errors."""

    code: str = "TAX_ERROR"


class MisconfiguredTaxTableError(TaxError):
    """
    Income matched no active bracket, or more than one.

    Only raised when the tax table is configured as strict; otherwise the
    same condition is surfaced as a warning on the slip.
    """

    code: str = "MISCONFIGURED_TAX_TABLE"

    def __init__(self, income: str, reason: str, bracket_ids: tuple = ()):
        self.income = income
        self.reason = reason
        self.bracket_ids = bracket_ids
        super().__init__(f"Tax table misconfigured for income {income}: {reason}")


# Compensation-related exceptions


class CompensationError(PayrollKernelError):
    """Base exception for benefit/deduction record errors."""

    code: str = "COMPENSATION_ERROR"


class InvalidRecordError(CompensationError):
    """
    Benefit or deduction record cannot be used in a calculation.

    Raised when the record is considered for a period, not when it is
    created; catalog validation belongs to the surrounding CRUD layer.
    """

    code: str = "INVALID_RECORD"

    def __init__(self, record_kind: str, record_id: int, reason: str):
        self.record_kind = record_kind
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Invalid {record_kind} record {record_id}: {reason}")


# Persistence-related exceptions


class PersistenceError(PayrollKernelError):
    """Storage failure while writing a salary slip. Not retried by the kernel."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Persistence failure during {operation}: {detail}")


# Immutability-related exceptions


class ImmutabilityError(PayrollKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Generated salary slips keep their amounts forever; only status
    transitions are permitted.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
