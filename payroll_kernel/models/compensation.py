"""
Module: payroll_kernel.models.compensation
Responsibility: ORM persistence for per-employee benefit and deduction
    records.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``calculation_type`` stores the CalculationType .value string.  It is
      not constrained here; an unknown value surfaces as InvalidRecordError
      when the record is used in a payroll calculation.
    - NULL effective bounds are unbounded.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase


class _CompensationRecordMixin:
    """Columns shared by benefit and deduction records."""

    calculation_type: Mapped[str] = mapped_column(String(20), nullable=False)
    # Absolute amount for fixed records, 0-100 rate for percentage records
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    effective_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    effective_until: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def _to_record(self, kind):
        from payroll_kernel.domain.dtos import CompensationRecord

        return CompensationRecord(
            id=self.id,
            employee_id=self.employee_id,
            type_id=self.type_id,
            kind=kind,
            calculation_type=self.calculation_type,
            amount=self.amount,
            effective_from=self.effective_from,
            effective_until=self.effective_until,
            is_active=self.is_active,
            description=self.description,
        )


class BenefitRecordModel(_CompensationRecordMixin, TrackedBase):
    """A benefit granted to one employee."""

    __tablename__ = "benefit_records"

    __table_args__ = (
        Index("idx_benefit_record_employee", "employee_id", "is_active"),
    )

    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False)
    type_id: Mapped[int | None] = mapped_column(
        ForeignKey("benefit_types.id"), nullable=True,
    )

    def to_dto(self):
        from payroll_kernel.domain.dtos import RecordKind

        return self._to_record(RecordKind.BENEFIT)

    def __repr__(self) -> str:
        return (
            f"<BenefitRecordModel {self.id}: employee={self.employee_id} "
            f"{self.calculation_type} {self.amount}>"
        )


class DeductionRecordModel(_CompensationRecordMixin, TrackedBase):
    """A deduction withheld from one employee."""

    __tablename__ = "deduction_records"

    __table_args__ = (
        Index("idx_deduction_record_employee", "employee_id", "is_active"),
    )

    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False)
    type_id: Mapped[int | None] = mapped_column(
        ForeignKey("withholding_types.id"), nullable=True,
    )

    def to_dto(self):
        from payroll_kernel.domain.dtos import RecordKind

        return self._to_record(RecordKind.DEDUCTION)

    def __repr__(self) -> str:
        return (
            f"<DeductionRecordModel {self.id}: employee={self.employee_id} "
            f"{self.calculation_type} {self.amount}>"
        )
