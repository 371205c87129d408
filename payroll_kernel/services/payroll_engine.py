"""
PayrollEngine -- generates one salary slip for one employee and period.

Responsibility:
    Guards against duplicates, aggregates benefits and deductions, resolves
    income tax, computes totals and persists the resulting slip with a
    unique human-readable reference.

Architecture position:
    Kernel > Services -- imperative shell around the pure
    CompensationAggregator and TaxBracketResolver.

Invariants enforced:
    - total_earnings = basic_salary + sum(benefits)
    - total_deductions = sum(deductions), including the income tax line,
      which is present only when tax > 0 and equals statutory_tax
    - net_payable = total_earnings - total_deductions, never clamped; a
      negative value adds a NEGATIVE_NET_PAYABLE warning
    - At most one non-cancelled slip per (employee, period)
    - All writes happen inside a SAVEPOINT; on any failure nothing from
      this call remains in the session.  The engine never commits.

Failure modes:
    - DuplicateSlipError: a non-cancelled slip already exists (guard, or
      the partial unique index when a concurrent writer won the race).
    - EmployeeInactiveError: the employee is not active.
    - InvalidRecordError: an applicable benefit/deduction record is invalid.
    - MisconfiguredTaxTableError: strict tax table and no/ambiguous bracket.
    - PersistenceError: any other storage failure, on read or write.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from decimal import Decimal

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.compensation import CompensationAggregator
from payroll_kernel.domain.dtos import (
    BreakdownLine,
    EmployeeSnapshot,
    IncomeBasis,
    PayrollReferenceData,
    PayrollRules,
    SalarySlip,
    SlipStatus,
    SlipWarning,
    TaxBracket,
    TaxResolution,
    WarningCode,
)
from payroll_kernel.domain.period import Period
from payroll_kernel.domain.slip_reference import build_slip_reference
from payroll_kernel.domain.tax import TaxBracketResolver
from payroll_kernel.domain.values import ZERO, quantize_money, sum_money
from payroll_kernel.exceptions import (
    DuplicateSlipError,
    EmployeeInactiveError,
    PersistenceError,
)
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_kernel.models.salary_slip import SalarySlipModel
from payroll_kernel.selectors.salary_slip_selector import SalarySlipSelector
from payroll_kernel.services.base import BaseService
from payroll_kernel.services.reference_data_loader import ReferenceDataLoader

logger = get_logger("services.payroll_engine")

TAX_LINE_KIND = "tax"


class PayrollEngine(BaseService[SalarySlipModel]):
    """
    Salary slip generation for a single employee.

    Contract:
        ``generate()`` either returns the persisted SalarySlip (flushed,
        not committed) or raises; it never leaves a partial slip behind.

    Non-goals:
        - Does NOT commit.  The caller decides the transaction boundary.
        - Does NOT apply tax exemptions or minimum tax limits.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        rules: PayrollRules | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._rules = rules or PayrollRules()
        self._resolver = TaxBracketResolver(
            strict=self._rules.strict_tax_table,
            places=self._rules.decimal_places,
        )
        self._slips = SalarySlipSelector(session)

    @property
    def rules(self) -> PayrollRules:
        return self._rules

    def generate(
        self,
        employee: EmployeeSnapshot,
        period: Period,
        tax_brackets: Iterable[TaxBracket],
        reference: PayrollReferenceData | None = None,
    ) -> SalarySlip:
        """
        Generate and persist the salary slip for ``employee`` in ``period``.

        Args:
            employee: Roster snapshot (id, base salary, active flag).
            period: Salary period.
            tax_brackets: Tax table to resolve against.
            reference: Run-scoped reference snapshot.  Loaded for this
                employee alone when omitted.
        """
        brackets = tuple(tax_brackets)
        with LogContext.bind(employee_id=employee.id, period=period.label):
            self._guard(employee, period)
            generation = self._next_generation(employee, period)

            if reference is None:
                reference = ReferenceDataLoader(self.session, self._clock).load(
                    employee_ids=[employee.id], tax_brackets=brackets,
                )

            slip = self._calculate(employee, period, brackets, reference, generation)
            persisted = self._persist(slip, period)

            logger.info(
                "slip_generated",
                extra={
                    "slip_reference": persisted.slip_reference,
                    "total_earnings": str(persisted.total_earnings),
                    "total_deductions": str(persisted.total_deductions),
                    "net_payable": str(persisted.net_payable),
                    "tax_bracket_id": persisted.tax_bracket_id,
                    "warning_codes": list(persisted.warning_codes),
                },
            )
            return persisted

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    @contextmanager
    def _storage_read(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error(
                "slip_storage_read_failed",
                extra={"operation": operation},
                exc_info=True,
            )
            raise PersistenceError(operation, str(exc)) from exc

    def _guard(self, employee: EmployeeSnapshot, period: Period) -> None:
        with self._storage_read("check_existing_slip"):
            existing = self._slips.find_active(employee.id, period)
        if existing is not None:
            logger.warning(
                "duplicate_slip_rejected",
                extra={"existing_reference": existing.slip_reference},
            )
            raise DuplicateSlipError(employee.id, period.label, existing.slip_reference)
        if not employee.is_active:
            logger.warning("inactive_employee_rejected")
            raise EmployeeInactiveError(employee.id)

    def _next_generation(self, employee: EmployeeSnapshot, period: Period) -> int:
        """1 for the first slip of (employee, period), 2 after one cancellation, ..."""
        with self._storage_read("count_period_slips"):
            return self._slips.count_for_period(employee.id, period) + 1

    def resolve_tax(
        self,
        total_earnings: Decimal,
        brackets: tuple[TaxBracket, ...],
    ) -> tuple[Decimal, TaxResolution]:
        """Period tax for ``total_earnings`` under the configured income basis."""
        places = self._rules.decimal_places
        if self._rules.income_basis is IncomeBasis.ANNUALIZED:
            periods = self._rules.periods_per_year
            resolution = self._resolver.resolve(total_earnings * periods, brackets)
            return quantize_money(resolution.tax / periods, places), resolution
        resolution = self._resolver.resolve(total_earnings, brackets)
        return resolution.tax, resolution

    def _calculate(
        self,
        employee: EmployeeSnapshot,
        period: Period,
        brackets: tuple[TaxBracket, ...],
        reference: PayrollReferenceData,
        generation: int,
    ) -> SalarySlip:
        places = self._rules.decimal_places
        breakdown = CompensationAggregator(reference, places).aggregate(employee, period)

        basic_salary = quantize_money(employee.effective_base_salary, places)
        total_earnings = sum_money(
            [basic_salary, *(line.amount for line in breakdown.benefits)], places
        )

        tax, resolution = self.resolve_tax(total_earnings, brackets)

        deductions = list(breakdown.deductions)
        if tax > ZERO:
            deductions.append(
                BreakdownLine(
                    name=self._rules.income_tax_label,
                    amount=tax,
                    kind=TAX_LINE_KIND,
                    is_statutory=True,
                )
            )
        total_deductions = sum_money((line.amount for line in deductions), places)
        net_payable = quantize_money(total_earnings - total_deductions, places)

        warnings: list[SlipWarning] = []
        if resolution.warning is not None:
            warnings.append(resolution.warning)
        if net_payable < ZERO:
            logger.warning(
                "negative_net_payable",
                extra={"net_payable": str(net_payable)},
            )
            warnings.append(
                SlipWarning(
                    WarningCode.NEGATIVE_NET_PAYABLE,
                    f"Net payable is negative: {net_payable}",
                )
            )

        generated_at = self._clock.now()
        slip_reference = build_slip_reference(
            period,
            employee.id,
            {
                "employee_id": employee.id,
                "period": period.label,
                "generation": generation,
                "basic_salary": basic_salary,
                "benefits": [line.to_dict() for line in breakdown.benefits],
                "deductions": [line.to_dict() for line in deductions],
                "total_earnings": total_earnings,
                "total_deductions": total_deductions,
                "net_payable": net_payable,
            },
            generated_at,
            prefix=self._rules.slip_reference_prefix,
        )

        return SalarySlip(
            id=None,
            employee_id=employee.id,
            slip_reference=slip_reference,
            salary_period=period.label,
            basic_salary=basic_salary,
            benefits_breakdown=breakdown.benefits,
            deductions_breakdown=tuple(deductions),
            statutory_tax=tax,
            tax_bracket_id=resolution.bracket.id if resolution.bracket else None,
            total_earnings=total_earnings,
            total_deductions=total_deductions,
            net_payable=net_payable,
            status=SlipStatus.GENERATED,
            generated_at=generated_at,
            warnings=tuple(warnings),
        )

    def _persist(self, slip: SalarySlip, period: Period) -> SalarySlip:
        model = SalarySlipModel.from_dto(slip)
        try:
            with self.session.begin_nested():
                self.session.add(model)
                self.session.flush()
        except IntegrityError as exc:
            existing = self._slips.find_active(slip.employee_id, period)
            if existing is not None:
                logger.warning(
                    "duplicate_slip_rejected",
                    extra={
                        "existing_reference": existing.slip_reference,
                        "source": "unique_index",
                    },
                )
                raise DuplicateSlipError(
                    slip.employee_id, period.label, existing.slip_reference
                ) from exc
            raise PersistenceError("insert_salary_slip", str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            logger.error(
                "slip_persistence_failed",
                extra={"slip_reference": slip.slip_reference},
                exc_info=True,
            )
            raise PersistenceError("insert_salary_slip", str(exc)) from exc
        return model.to_dto()
