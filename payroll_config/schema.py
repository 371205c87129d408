"""
PayrollSettings schema.

Typed, frozen runtime settings for payroll generation.  YAML is parsed into
these types by the loader; nothing downstream reads YAML or environment
variables directly.
"""

from __future__ import annotations

from dataclasses import dataclass

from payroll_kernel.domain.dtos import IncomeBasis


@dataclass(frozen=True)
class PayrollSettings:
    """Runtime payroll settings."""

    income_basis: IncomeBasis = IncomeBasis.PERIOD
    periods_per_year: int = 12
    currency: str = "USD"
    decimal_places: int = 2
    income_tax_label: str = "Income Tax"
    slip_reference_prefix: str = "SLIP"
    strict_tax_table: bool = False
    max_workers: int = 4
    database_url: str = "sqlite:///payroll.db"
    config_id: str = "default"
    checksum: str = ""

    @property
    def is_annualized(self) -> bool:
        return self.income_basis is IncomeBasis.ANNUALIZED
