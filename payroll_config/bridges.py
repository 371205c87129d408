"""
Config -> Kernel Bridges.

Functions that convert PayrollSettings into kernel-compatible inputs.
These live in payroll_config (the producer) because the kernel must NEVER
import payroll_config.

Usage:
    from payroll_config.bridges import build_payroll_rules

    settings = get_active_config()
    engine = PayrollEngine(session, clock, rules=build_payroll_rules(settings))
"""

from __future__ import annotations

from payroll_config.schema import PayrollSettings
from payroll_kernel.domain.dtos import PayrollRules


def build_payroll_rules(settings: PayrollSettings) -> PayrollRules:
    """Calculation rules for the payroll engine."""
    return PayrollRules(
        income_basis=settings.income_basis,
        periods_per_year=settings.periods_per_year,
        decimal_places=settings.decimal_places,
        income_tax_label=settings.income_tax_label,
        slip_reference_prefix=settings.slip_reference_prefix,
        strict_tax_table=settings.strict_tax_table,
    )
