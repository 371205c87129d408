"""
Data Transfer Objects for the payroll kernel.

Responsibility:
    Frozen dataclasses and enums exchanged between the pure calculators
    (tax resolver, compensation aggregator), the services that persist
    slips, and the batch coordinator.  ORM models convert to and from
    these via ``to_dto()`` / ``from_dto()``.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - All DTOs are frozen; collections are tuples.
    - Monetary fields are Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from payroll_kernel.domain.values import ZERO, to_decimal


class CalculationType(str, Enum):
    """How a benefit/deduction record amount is interpreted."""

    FIXED = "fixed"  # Absolute currency amount
    PERCENTAGE = "percentage"  # Percent of base salary, 0-100


class RecordKind(str, Enum):
    BENEFIT = "benefit"
    DEDUCTION = "deduction"


class SlipStatus(str, Enum):
    """Salary slip lifecycle status."""

    GENERATED = "generated"
    PAID = "paid"
    CANCELLED = "cancelled"


class WarningCode(str, Enum):
    """Reportable conditions that do not fail a slip."""

    TAX_BRACKET_UNRESOLVED = "TAX_BRACKET_UNRESOLVED"
    TAX_BRACKET_AMBIGUOUS = "TAX_BRACKET_AMBIGUOUS"
    NEGATIVE_NET_PAYABLE = "NEGATIVE_NET_PAYABLE"


class IncomeBasis(str, Enum):
    """Income figure the tax table is resolved against."""

    PERIOD = "period"  # Tax table is per salary period
    ANNUALIZED = "annualized"  # Tax table is annual; period tax = annual / periods_per_year


# =============================================================================
# Roster and catalog
# =============================================================================


@dataclass(frozen=True)
class EmployeeSnapshot:
    """Roster entry as seen by the kernel (read-only)."""

    id: int
    base_salary: Decimal | None
    is_active: bool = True
    full_name: str | None = None

    @property
    def effective_base_salary(self) -> Decimal:
        """Base salary with a missing value treated as zero."""
        return to_decimal(self.base_salary)


@dataclass(frozen=True)
class BenefitType:
    id: int
    title: str
    is_taxable: bool = True
    is_active: bool = True


@dataclass(frozen=True)
class WithholdingType:
    id: int
    title: str
    is_statutory: bool = False
    is_active: bool = True


@dataclass(frozen=True)
class CompensationRecord:
    """
    A benefit or deduction attached to one employee.

    ``amount`` is an absolute amount for FIXED records and a 0-100 rate
    for PERCENTAGE records.  ``calculation_type`` is kept as the raw
    stored string so that an unknown value can be reported as an invalid
    record rather than failing at load time.
    """

    id: int
    employee_id: int
    type_id: int | None
    kind: RecordKind
    calculation_type: str
    amount: Decimal
    effective_from: date | None = None
    effective_until: date | None = None
    is_active: bool = True
    description: str | None = None


@dataclass(frozen=True)
class TaxBracket:
    """One row of the administrator-managed tax table."""

    id: int
    title: str
    income_from: Decimal
    income_to: Decimal
    fixed_amount: Decimal = ZERO
    percentage: Decimal = ZERO
    is_active: bool = True

    def covers(self, income: Decimal) -> bool:
        """Inclusive bounds check."""
        return self.income_from <= income <= self.income_to


@dataclass(frozen=True)
class PayrollReferenceData:
    """
    Read-mostly data for one payroll run.

    Loaded once per run by ReferenceDataLoader and reused for every
    employee in that run; never shared across runs.
    """

    tax_brackets: tuple[TaxBracket, ...] = ()
    benefit_types: dict[int, BenefitType] = field(default_factory=dict)
    withholding_types: dict[int, WithholdingType] = field(default_factory=dict)
    records_by_employee: dict[int, tuple[CompensationRecord, ...]] = field(
        default_factory=dict
    )
    loaded_at: datetime | None = None

    def records_for(
        self,
        employee_id: int,
        kind: RecordKind | None = None,
    ) -> tuple[CompensationRecord, ...]:
        records = self.records_by_employee.get(employee_id, ())
        if kind is None:
            return records
        return tuple(r for r in records if r.kind == kind)


# =============================================================================
# Calculation results
# =============================================================================


@dataclass(frozen=True)
class BreakdownLine:
    """One named amount on a slip (benefit, deduction or tax line)."""

    name: str
    amount: Decimal
    kind: str
    record_id: int | None = None
    is_taxable: bool | None = None
    is_statutory: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "amount": str(self.amount),
            "kind": self.kind,
        }
        if self.record_id is not None:
            data["record_id"] = self.record_id
        if self.is_taxable is not None:
            data["is_taxable"] = self.is_taxable
        if self.is_statutory is not None:
            data["is_statutory"] = self.is_statutory
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BreakdownLine:
        return cls(
            name=data["name"],
            amount=to_decimal(data["amount"]),
            kind=data.get("kind", ""),
            record_id=data.get("record_id"),
            is_taxable=data.get("is_taxable"),
            is_statutory=data.get("is_statutory"),
        )


@dataclass(frozen=True)
class CompensationBreakdown:
    """Output of the compensation aggregator for one employee and period."""

    benefits: tuple[BreakdownLine, ...] = ()
    deductions: tuple[BreakdownLine, ...] = ()

    @property
    def benefits_total(self) -> Decimal:
        return sum((line.amount for line in self.benefits), ZERO)

    @property
    def deductions_total(self) -> Decimal:
        return sum((line.amount for line in self.deductions), ZERO)


@dataclass(frozen=True)
class SlipWarning:
    code: WarningCode
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code.value, "message": self.message}

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> SlipWarning:
        return cls(code=WarningCode(data["code"]), message=data["message"])


@dataclass(frozen=True)
class TaxResolution:
    """Result of resolving one income against the tax table."""

    income: Decimal
    tax: Decimal
    bracket: TaxBracket | None
    matched_bracket_ids: tuple[int, ...] = ()
    warning: SlipWarning | None = None

    @property
    def is_resolved(self) -> bool:
        return self.bracket is not None


@dataclass(frozen=True)
class SalarySlip:
    """Immutable snapshot of a generated salary slip."""

    id: int | None
    employee_id: int
    slip_reference: str
    salary_period: str
    basic_salary: Decimal
    benefits_breakdown: tuple[BreakdownLine, ...]
    deductions_breakdown: tuple[BreakdownLine, ...]
    statutory_tax: Decimal
    total_earnings: Decimal
    total_deductions: Decimal
    net_payable: Decimal
    status: SlipStatus
    generated_at: datetime
    tax_bracket_id: int | None = None
    paid_at: datetime | None = None
    cancelled_at: datetime | None = None
    payment_method: str | None = None
    payment_reference: str | None = None
    warnings: tuple[SlipWarning, ...] = ()

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def warning_codes(self) -> tuple[str, ...]:
        return tuple(w.code.value for w in self.warnings)


@dataclass(frozen=True)
class PayrollPeriodSummary:
    """
    Aggregate figures for one salary period.

    Totals and ``slip_count`` cover non-cancelled slips; cancelled slips
    are only counted in ``cancelled_count``.
    """

    period: str
    slip_count: int
    total_earnings: Decimal
    total_deductions: Decimal
    total_net_payable: Decimal
    paid_count: int
    pending_count: int
    cancelled_count: int


@dataclass(frozen=True)
class YearToDateSummary:
    """Payroll totals for every period of one calendar year (non-cancelled slips)."""

    year: int
    slip_count: int
    total_earnings: Decimal
    total_deductions: Decimal
    total_net_payable: Decimal
    paid_count: int
    pending_count: int
    cancelled_count: int


@dataclass(frozen=True)
class SlipPaymentFailure:
    """A slip that could not be marked paid in a bulk payment."""

    slip_id: int
    reason_code: str
    message: str


@dataclass(frozen=True)
class BulkPaymentResult:
    """Outcome of marking several slips paid; ordered as requested."""

    requested_slip_ids: tuple[int, ...]
    paid: tuple[SalarySlip, ...]
    failed: tuple[SlipPaymentFailure, ...]

    @property
    def paid_count(self) -> int:
        return len(self.paid)

    @property
    def is_complete(self) -> bool:
        return not self.failed


# =============================================================================
# Generation rules
# =============================================================================


@dataclass(frozen=True)
class PayrollRules:
    """
    Calculation rules the engine applies to every slip.

    Built from runtime configuration by ``payroll_config.bridges``; the
    kernel never reads configuration itself.
    """

    income_basis: IncomeBasis = IncomeBasis.PERIOD
    periods_per_year: int = 12
    decimal_places: int = 2
    income_tax_label: str = "Income Tax"
    slip_reference_prefix: str = "SLIP"
    strict_tax_table: bool = False

    def __post_init__(self) -> None:
        if self.periods_per_year < 1:
            raise ValueError(
                f"periods_per_year must be >= 1, got {self.periods_per_year}"
            )
