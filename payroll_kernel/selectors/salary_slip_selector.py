"""
SalarySlipSelector -- read-only queries over generated salary slips.

Responsibility:
    Listing, lookup, per-employee history, per-period and year-to-date
    summaries of salary slips for collaborators (HR screens, payroll
    reports, the payroll engine's duplicate guard).

Architecture position:
    Kernel > Selectors -- read side.  Returns SalarySlip and summary
    DTOs, never ORM instances.

Failure modes:
    - SlipNotFoundError from get_by_id / get_by_reference.
    - InvalidPeriodError from malformed periods or years.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import case, func, select

from payroll_kernel.domain.dtos import (
    PayrollPeriodSummary,
    SalarySlip,
    SlipStatus,
    YearToDateSummary,
)
from payroll_kernel.domain.period import MAX_YEAR, MIN_YEAR, Period
from payroll_kernel.domain.values import quantize_money
from payroll_kernel.exceptions import InvalidPeriodError, SlipNotFoundError
from payroll_kernel.models.salary_slip import SalarySlipModel
from payroll_kernel.selectors.base import BaseSelector

DEFAULT_HISTORY_LIMIT = 12


def _period_label(period: Period | str) -> str:
    if isinstance(period, Period):
        return period.label
    return Period.parse(period).label


class SalarySlipSelector(BaseSelector[SalarySlipModel]):
    """Read-only salary slip queries."""

    def list_slips(
        self,
        period: Period | str | None = None,
        employee_id: int | None = None,
        status: SlipStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[SalarySlip]:
        """Slips matching the filters, ordered by period then employee id."""
        stmt = select(SalarySlipModel)
        if period is not None:
            stmt = stmt.where(SalarySlipModel.salary_period == _period_label(period))
        if employee_id is not None:
            stmt = stmt.where(SalarySlipModel.employee_id == employee_id)
        if status is not None:
            stmt = stmt.where(SalarySlipModel.status == SlipStatus(status).value)
        stmt = stmt.order_by(
            SalarySlipModel.salary_period,
            SalarySlipModel.employee_id,
            SalarySlipModel.id,
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def get_by_id(self, slip_id: int) -> SalarySlip:
        model = self.session.get(SalarySlipModel, slip_id)
        if model is None:
            raise SlipNotFoundError(str(slip_id))
        return model.to_dto()

    def get_by_reference(self, slip_reference: str) -> SalarySlip:
        model = self.session.execute(
            select(SalarySlipModel).where(
                SalarySlipModel.slip_reference == slip_reference
            )
        ).scalar_one_or_none()
        if model is None:
            raise SlipNotFoundError(slip_reference)
        return model.to_dto()

    def find_active(self, employee_id: int, period: Period | str) -> SalarySlip | None:
        """The non-cancelled slip for (employee, period), if any."""
        model = self.session.execute(
            select(SalarySlipModel).where(
                SalarySlipModel.employee_id == employee_id,
                SalarySlipModel.salary_period == _period_label(period),
                SalarySlipModel.status != SlipStatus.CANCELLED.value,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def count_for_period(self, employee_id: int, period: Period | str) -> int:
        """All slips ever generated for (employee, period), cancelled included."""
        return self.session.execute(
            select(func.count(SalarySlipModel.id)).where(
                SalarySlipModel.employee_id == employee_id,
                SalarySlipModel.salary_period == _period_label(period),
            )
        ).scalar_one()

    def employee_history(
        self,
        employee_id: int,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[SalarySlip]:
        """Most recent slips for one employee, newest period first."""
        stmt = (
            select(SalarySlipModel)
            .where(SalarySlipModel.employee_id == employee_id)
            .order_by(
                SalarySlipModel.salary_period.desc(),
                SalarySlipModel.generated_at.desc(),
                SalarySlipModel.id.desc(),
            )
            .limit(limit)
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def period_summary(self, period: Period | str) -> PayrollPeriodSummary:
        label = _period_label(period)
        totals = self._totals(SalarySlipModel.salary_period == label)
        return PayrollPeriodSummary(period=label, **totals)

    def year_to_date(self, year: int) -> YearToDateSummary:
        """Totals across every salary period of ``year``."""
        if isinstance(year, bool) or not isinstance(year, int):
            raise InvalidPeriodError(repr(year), "year must be an integer")
        if not MIN_YEAR <= year <= MAX_YEAR:
            raise InvalidPeriodError(
                str(year), f"year must be between {MIN_YEAR} and {MAX_YEAR}"
            )
        totals = self._totals(SalarySlipModel.salary_period.like(f"{year:04d}-%"))
        return YearToDateSummary(year=year, **totals)

    def _totals(self, where) -> dict:
        """Amount totals over non-cancelled slips plus per-status counts."""
        active = SalarySlipModel.status != SlipStatus.CANCELLED.value

        def _active_sum(column):
            return func.coalesce(func.sum(case((active, column), else_=0)), 0)

        def _count_status(status: SlipStatus):
            return func.coalesce(
                func.sum(case((SalarySlipModel.status == status.value, 1), else_=0)), 0
            )

        earnings, deductions, net, paid, pending, cancelled = self.session.execute(
            select(
                _active_sum(SalarySlipModel.total_earnings),
                _active_sum(SalarySlipModel.total_deductions),
                _active_sum(SalarySlipModel.net_payable),
                _count_status(SlipStatus.PAID),
                _count_status(SlipStatus.GENERATED),
                _count_status(SlipStatus.CANCELLED),
            ).where(where)
        ).one()

        return {
            "slip_count": int(paid) + int(pending),
            "total_earnings": quantize_money(Decimal(str(earnings))),
            "total_deductions": quantize_money(Decimal(str(deductions))),
            "total_net_payable": quantize_money(Decimal(str(net))),
            "paid_count": int(paid),
            "pending_count": int(pending),
            "cancelled_count": int(cancelled),
        }
