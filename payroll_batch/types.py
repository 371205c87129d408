"""
payroll_batch.types -- Pure frozen dataclasses for payroll runs.  ZERO I/O.

Follows the kernel DTO pattern: frozen dataclasses with tuples for
immutable collections.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from payroll_kernel.domain.dtos import SalarySlip, SlipWarning
from payroll_kernel.domain.period import Period

UNHANDLED_EXCEPTION = "UNHANDLED_EXCEPTION"


@dataclass(frozen=True)
class PayrollRunRequest:
    """Bulk generation request: which employees, which month."""

    employee_ids: tuple[int, ...]
    month: int
    year: int

    @property
    def period(self) -> Period:
        """Validated salary period (raises InvalidPeriodError)."""
        return Period.of(self.year, self.month)


@dataclass(frozen=True)
class RunFailure:
    """One employee that did not get a slip, and why."""

    employee_id: int
    reason_code: str
    message: str


@dataclass(frozen=True)
class RunWarning:
    """A slip warning, attributed to its employee."""

    employee_id: int
    slip_reference: str
    warning: SlipWarning

    @property
    def code(self) -> str:
        return self.warning.code.value


@dataclass(frozen=True)
class PayrollRunResult:
    """
    Outcome of one payroll run.

    ``succeeded`` and ``failed`` follow the order of
    ``requested_employee_ids`` regardless of completion order.
    """

    run_id: str
    period: str
    requested_employee_ids: tuple[int, ...]
    succeeded: tuple[SalarySlip, ...] = ()
    failed: tuple[RunFailure, ...] = ()
    warnings: tuple[RunWarning, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

    @property
    def requested(self) -> int:
        return len(self.requested_employee_ids)

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def is_complete(self) -> bool:
        return not self.failed

    def failure_for(self, employee_id: int) -> RunFailure | None:
        for failure in self.failed:
            if failure.employee_id == employee_id:
                return failure
        return None

    def summary_message(self) -> str:
        return (
            f"Successfully generated for {self.succeeded_count} "
            f"of {self.requested} employees"
        )
