"""
Module: payroll_kernel.models.employee
Responsibility: ORM persistence for the employee roster as read by payroll.
Architecture position: Kernel > Models.  May import from db/base.py only.

The roster is owned by the HR side of the suite; the payroll kernel only
reads ``base_salary`` and ``is_active``.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase


class EmployeeModel(TrackedBase):
    """
    ORM model for an employee on the payroll roster.

    Guarantees:
        - ``base_salary`` is Decimal or NULL (NULL is paid as zero).
    """

    __tablename__ = "employees"

    __table_args__ = (
        Index("idx_employee_active", "is_active"),
    )

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    base_salary: Mapped[Decimal | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dto(self):
        from payroll_kernel.domain.dtos import EmployeeSnapshot

        return EmployeeSnapshot(
            id=self.id,
            base_salary=self.base_salary,
            is_active=self.is_active,
            full_name=self.full_name,
        )

    def __repr__(self) -> str:
        return f"<EmployeeModel {self.id}: {self.full_name}>"
