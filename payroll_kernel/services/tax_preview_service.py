"""
TaxPreviewService -- standalone tax calculator.

Resolves an arbitrary income against the current tax table without
generating or persisting anything.  Used by HR to preview what a given
income would owe.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy.orm import Session

from payroll_kernel.domain.dtos import PayrollRules, TaxBracket, TaxResolution
from payroll_kernel.domain.tax import TaxBracketResolver
from payroll_kernel.services.reference_data_loader import ReferenceDataLoader


class TaxPreviewService:
    """Read-only tax calculator over the stored tax table."""

    def __init__(self, session: Session, rules: PayrollRules | None = None):
        self._session = session
        self._rules = rules or PayrollRules()
        self._resolver = TaxBracketResolver(
            strict=self._rules.strict_tax_table,
            places=self._rules.decimal_places,
        )

    def preview(
        self,
        income: Decimal | int | str,
        tax_brackets: Iterable[TaxBracket] | None = None,
    ) -> TaxResolution:
        """Tax owed on ``income`` under the stored (or given) tax table."""
        if tax_brackets is None:
            tax_brackets = ReferenceDataLoader(self._session).load_tax_brackets()
        return self._resolver.resolve(income, tax_brackets)
