"""
CompensationAggregator -- benefits and deductions applicable to a period.

Responsibility:
    Selects the benefit and deduction records that apply to one employee
    for one salary period and turns each into a named breakdown line.

Architecture position:
    Kernel > Domain -- pure functional core.  Reads only from a
    PayrollReferenceData snapshot passed in by the caller.

Invariants enforced:
    - A record applies iff it is active and the period reference date
      (last day of the month) lies inside its inclusive effective window.
    - Every applicable record contributes; none is dropped.
    - Fixed records contribute ``amount``; percentage records contribute
      ``round(base_salary * amount / 100)``.  A missing base salary makes
      percentage records contribute zero.
    - Lines are ordered by record id ascending.
    - Taxable/statutory flags are carried as metadata and never filter.

Failure modes:
    - InvalidRecordError when an applicable record has a percentage outside
      [0, 100], a negative fixed amount, or an unknown calculation type.
"""

from __future__ import annotations

from decimal import Decimal

from payroll_kernel.domain.dtos import (
    BreakdownLine,
    CalculationType,
    CompensationBreakdown,
    CompensationRecord,
    EmployeeSnapshot,
    PayrollReferenceData,
    RecordKind,
)
from payroll_kernel.domain.period import Period, window_covers
from payroll_kernel.domain.values import (
    DEFAULT_PLACES,
    HUNDRED,
    ZERO,
    percent_of,
    quantize_money,
)
from payroll_kernel.exceptions import InvalidRecordError

DEFAULT_BENEFIT_NAME = "Benefit"
DEFAULT_DEDUCTION_NAME = "Deduction"


def record_applies(record: CompensationRecord, period: Period) -> bool:
    """True if the record is active and in effect at the period reference date."""
    if not record.is_active:
        return False
    return window_covers(
        record.effective_from, record.effective_until, period.reference_date
    )


def _validate(record: CompensationRecord) -> CalculationType:
    try:
        calculation_type = CalculationType(record.calculation_type)
    except ValueError:
        raise InvalidRecordError(
            record.kind.value,
            record.id,
            f"unknown calculation type {record.calculation_type!r}",
        ) from None

    if calculation_type is CalculationType.PERCENTAGE:
        if record.amount < ZERO or record.amount > HUNDRED:
            raise InvalidRecordError(
                record.kind.value,
                record.id,
                f"percentage {record.amount} outside [0, 100]",
            )
    elif record.amount < ZERO:
        raise InvalidRecordError(
            record.kind.value,
            record.id,
            f"negative fixed amount {record.amount}",
        )
    return calculation_type


class CompensationAggregator:
    """Builds the benefit and deduction breakdown for one employee."""

    def __init__(
        self,
        reference: PayrollReferenceData,
        places: int = DEFAULT_PLACES,
    ):
        self._reference = reference
        self._places = places

    def aggregate(
        self,
        employee: EmployeeSnapshot,
        period: Period,
    ) -> CompensationBreakdown:
        base_salary = employee.effective_base_salary
        benefits = self._lines(employee.id, RecordKind.BENEFIT, period, base_salary)
        deductions = self._lines(employee.id, RecordKind.DEDUCTION, period, base_salary)
        return CompensationBreakdown(benefits=benefits, deductions=deductions)

    def record_amount(self, record: CompensationRecord, base_salary: Decimal) -> Decimal:
        """Monetary contribution of a single applicable record."""
        calculation_type = _validate(record)
        if calculation_type is CalculationType.PERCENTAGE:
            if not base_salary:
                return quantize_money(ZERO, self._places)
            return percent_of(base_salary, record.amount, self._places)
        return quantize_money(record.amount, self._places)

    def _lines(self, employee_id, kind, period, base_salary):
        records = sorted(
            (
                r
                for r in self._reference.records_for(employee_id, kind)
                if record_applies(r, period)
            ),
            key=lambda r: r.id,
        )
        return tuple(self._line(r, base_salary) for r in records)

    def _line(self, record: CompensationRecord, base_salary) -> BreakdownLine:
        amount = self.record_amount(record, base_salary)
        if record.kind is RecordKind.BENEFIT:
            benefit_type = self._reference.benefit_types.get(record.type_id)
            return BreakdownLine(
                name=benefit_type.title if benefit_type else DEFAULT_BENEFIT_NAME,
                amount=amount,
                kind=RecordKind.BENEFIT.value,
                record_id=record.id,
                is_taxable=benefit_type.is_taxable if benefit_type else None,
            )
        withholding_type = self._reference.withholding_types.get(record.type_id)
        return BreakdownLine(
            name=withholding_type.title if withholding_type else DEFAULT_DEDUCTION_NAME,
            amount=amount,
            kind=RecordKind.DEDUCTION.value,
            record_id=record.id,
            is_statutory=withholding_type.is_statutory if withholding_type else None,
        )
