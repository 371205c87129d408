"""Bulk payroll runs: PayrollRunCoordinator and run DTOs."""

from payroll_batch.coordinator import PayrollRunCoordinator
from payroll_batch.types import (
    PayrollRunRequest,
    PayrollRunResult,
    RunFailure,
    RunWarning,
)

__all__ = [
    "PayrollRunCoordinator",
    "PayrollRunRequest",
    "PayrollRunResult",
    "RunFailure",
    "RunWarning",
]
