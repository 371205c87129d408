"""Pure payroll domain: value types, DTOs and calculators (no database access)."""

from payroll_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from payroll_kernel.domain.compensation import CompensationAggregator
from payroll_kernel.domain.dtos import (
    BenefitType,
    BreakdownLine,
    CalculationType,
    CompensationBreakdown,
    CompensationRecord,
    EmployeeSnapshot,
    IncomeBasis,
    PayrollPeriodSummary,
    PayrollReferenceData,
    PayrollRules,
    RecordKind,
    SalarySlip,
    SlipStatus,
    SlipWarning,
    TaxBracket,
    TaxResolution,
    WarningCode,
    WithholdingType,
)
from payroll_kernel.domain.period import Period, window_covers
from payroll_kernel.domain.tax import TaxBracketResolver

__all__ = [
    "BenefitType",
    "BreakdownLine",
    "CalculationType",
    "Clock",
    "CompensationAggregator",
    "CompensationBreakdown",
    "CompensationRecord",
    "DeterministicClock",
    "EmployeeSnapshot",
    "IncomeBasis",
    "PayrollPeriodSummary",
    "PayrollReferenceData",
    "PayrollRules",
    "Period",
    "RecordKind",
    "SalarySlip",
    "SlipStatus",
    "SlipWarning",
    "SystemClock",
    "TaxBracket",
    "TaxBracketResolver",
    "TaxResolution",
    "WarningCode",
    "WithholdingType",
    "window_covers",
]
