"""
Module: payroll_kernel.models.catalog
Responsibility: ORM persistence for administrator-managed payroll catalogs:
    benefit types, withholding types and the tax bracket table.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Tax bracket bounds are stored as given; the payroll kernel does not
      enforce non-overlap or contiguity (see domain/tax.py).
"""

from decimal import Decimal

from sqlalchemy import Boolean, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase


class BenefitTypeModel(TrackedBase):
    """Catalog entry for an earnings component (e.g. "Housing Allowance")."""

    __tablename__ = "benefit_types"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    is_taxable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dto(self):
        from payroll_kernel.domain.dtos import BenefitType

        return BenefitType(
            id=self.id,
            title=self.title,
            is_taxable=self.is_taxable,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<BenefitTypeModel {self.id}: {self.title}>"


class WithholdingTypeModel(TrackedBase):
    """Catalog entry for a deduction component (e.g. "Pension")."""

    __tablename__ = "withholding_types"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    is_statutory: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dto(self):
        from payroll_kernel.domain.dtos import WithholdingType

        return WithholdingType(
            id=self.id,
            title=self.title,
            is_statutory=self.is_statutory,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<WithholdingTypeModel {self.id}: {self.title}>"


class TaxBracketModel(TrackedBase):
    """
    One row of the tax table.

    Contract:
        Income in [income_from, income_to] (inclusive) owes
        ``fixed_amount + (income - income_from) * percentage / 100``.
    """

    __tablename__ = "tax_brackets"

    __table_args__ = (
        Index("idx_tax_bracket_active", "is_active"),
        Index("idx_tax_bracket_range", "income_from", "income_to"),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    income_from: Mapped[Decimal] = mapped_column(nullable=False)
    income_to: Mapped[Decimal] = mapped_column(nullable=False)
    fixed_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(
        Numeric(9, 4), default=Decimal("0"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dto(self):
        from payroll_kernel.domain.dtos import TaxBracket

        return TaxBracket(
            id=self.id,
            title=self.title,
            income_from=self.income_from,
            income_to=self.income_to,
            fixed_amount=self.fixed_amount,
            percentage=self.percentage,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return (
            f"<TaxBracketModel {self.id}: {self.income_from}-{self.income_to} "
            f"@ {self.percentage}%>"
        )
