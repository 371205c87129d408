"""
Module: payroll_kernel.models.salary_slip
Responsibility: ORM persistence for generated salary slips.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one non-cancelled slip per (employee_id, salary_period):
      partial unique index ``uq_salary_slip_active_period``.  This is the
      storage-level backstop behind the engine's duplicate guard.
    - ``slip_reference`` is unique.
    - Amounts are immutable after INSERT; only status, paid_at,
      cancelled_at and the payment details may change, and only away from
      GENERATED (db/immutability.py).  Payment details are set only on
      the move to PAID.
    - Breakdown and warning lists are stored as JSON with amounts as
      decimal strings, never floats.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase

_ACTIVE_SLIP_PREDICATE = text("status != 'cancelled'")


class SalarySlipModel(TrackedBase):
    """
    ORM model for a salary slip.

    Contract:
        total_earnings = basic_salary + sum(benefits_breakdown)
        total_deductions = sum(deductions_breakdown)
        net_payable = total_earnings - total_deductions (may be negative)
    """

    __tablename__ = "salary_slips"

    __table_args__ = (
        Index(
            "uq_salary_slip_active_period",
            "employee_id",
            "salary_period",
            unique=True,
            sqlite_where=_ACTIVE_SLIP_PREDICATE,
            postgresql_where=_ACTIVE_SLIP_PREDICATE,
        ),
        Index("idx_salary_slip_period", "salary_period", "employee_id"),
        Index("idx_salary_slip_status", "status"),
    )

    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False)
    slip_reference: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    salary_period: Mapped[str] = mapped_column(String(7), nullable=False)

    basic_salary: Mapped[Decimal] = mapped_column(nullable=False)
    benefits_breakdown: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    deductions_breakdown: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    statutory_tax: Mapped[Decimal] = mapped_column(nullable=False)
    # Plain column, not a FK: brackets may be edited or removed later
    tax_bracket_id: Mapped[int | None] = mapped_column(nullable=True)
    total_earnings: Mapped[Decimal] = mapped_column(nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False)
    net_payable: Mapped[Decimal] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="generated")
    generated_at: Mapped[datetime] = mapped_column(nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    warnings: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def to_dto(self):
        from payroll_kernel.domain.dtos import (
            BreakdownLine,
            SalarySlip,
            SlipStatus,
            SlipWarning,
        )

        return SalarySlip(
            id=self.id,
            employee_id=self.employee_id,
            slip_reference=self.slip_reference,
            salary_period=self.salary_period,
            basic_salary=self.basic_salary,
            benefits_breakdown=tuple(
                BreakdownLine.from_dict(line) for line in self.benefits_breakdown or ()
            ),
            deductions_breakdown=tuple(
                BreakdownLine.from_dict(line) for line in self.deductions_breakdown or ()
            ),
            statutory_tax=self.statutory_tax,
            tax_bracket_id=self.tax_bracket_id,
            total_earnings=self.total_earnings,
            total_deductions=self.total_deductions,
            net_payable=self.net_payable,
            status=SlipStatus(self.status),
            generated_at=self.generated_at,
            paid_at=self.paid_at,
            cancelled_at=self.cancelled_at,
            payment_method=self.payment_method,
            payment_reference=self.payment_reference,
            warnings=tuple(SlipWarning.from_dict(w) for w in self.warnings or ()),
        )

    @classmethod
    def from_dto(cls, dto) -> "SalarySlipModel":
        return cls(
            employee_id=dto.employee_id,
            slip_reference=dto.slip_reference,
            salary_period=dto.salary_period,
            basic_salary=dto.basic_salary,
            benefits_breakdown=[line.to_dict() for line in dto.benefits_breakdown],
            deductions_breakdown=[line.to_dict() for line in dto.deductions_breakdown],
            statutory_tax=dto.statutory_tax,
            tax_bracket_id=dto.tax_bracket_id,
            total_earnings=dto.total_earnings,
            total_deductions=dto.total_deductions,
            net_payable=dto.net_payable,
            status=dto.status.value,
            generated_at=dto.generated_at,
            paid_at=dto.paid_at,
            cancelled_at=dto.cancelled_at,
            payment_method=dto.payment_method,
            payment_reference=dto.payment_reference,
            warnings=[w.to_dict() for w in dto.warnings],
        )

    def __repr__(self) -> str:
        return (
            f"<SalarySlipModel {self.slip_reference}: employee={self.employee_id} "
            f"period={self.salary_period} status={self.status}>"
        )
