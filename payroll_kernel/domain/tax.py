"""
TaxBracketResolver -- pure bracket lookup and tax computation.

Responsibility:
    Given an income and the administrator-managed tax table, pick the
    bracket that covers the income and compute the tax owed:

        tax = fixed_amount + max(0, income - income_from) * percentage / 100

    using the selected bracket only (flat-plus-marginal, not cumulative
    progressive), rounded to currency precision.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O beyond logging.

Invariants enforced:
    - Only active brackets are considered.
    - Bounds are inclusive on both ends.
    - Overlapping matches resolve deterministically to the lowest id.
    - A missing match is never silent: tax is zero and the resolution
      carries a TAX_BRACKET_UNRESOLVED warning.

Failure modes:
    - MisconfiguredTaxTableError in strict mode when the income matches no
      bracket or more than one.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from payroll_kernel.domain.dtos import (
    SlipWarning,
    TaxBracket,
    TaxResolution,
    WarningCode,
)
from payroll_kernel.domain.values import (
    DEFAULT_PLACES,
    HUNDRED,
    ZERO,
    quantize_money,
    to_decimal,
)
from payroll_kernel.exceptions import MisconfiguredTaxTableError
from payroll_kernel.logging_config import get_logger

logger = get_logger("domain.tax")


def bracket_tax(
    bracket: TaxBracket,
    income: Decimal,
    places: int = DEFAULT_PLACES,
) -> Decimal:
    """Tax for ``income`` under a single bracket."""
    taxable_excess = max(ZERO, income - bracket.income_from)
    raw = bracket.fixed_amount + taxable_excess * bracket.percentage / HUNDRED
    return quantize_money(raw, places)


class TaxBracketResolver:
    """
    Resolves an income against a tax table.

    Contract:
        ``resolve()`` never raises in lenient mode; it returns a
        TaxResolution whose ``warning`` describes any table problem.

    Non-goals:
        - Does NOT validate that brackets are non-overlapping or
          contiguous; that is the catalog owner's job.
        - Does NOT apply exemptions or minimum tax limits.
    """

    def __init__(self, strict: bool = False, places: int = DEFAULT_PLACES):
        self._strict = strict
        self._places = places

    @property
    def strict(self) -> bool:
        return self._strict

    def resolve(
        self,
        income: Decimal | int | str,
        brackets: Iterable[TaxBracket],
    ) -> TaxResolution:
        income = to_decimal(income)

        matches = sorted(
            (b for b in brackets if b.is_active and b.covers(income)),
            key=lambda b: b.id,
        )
        matched_ids = tuple(b.id for b in matches)

        if not matches:
            message = f"No active tax bracket covers income {income}"
            logger.warning(
                "tax_bracket_unresolved",
                extra={"income": str(income), "strict": self._strict},
            )
            if self._strict:
                raise MisconfiguredTaxTableError(str(income), "no matching bracket")
            return TaxResolution(
                income=income,
                tax=quantize_money(ZERO, self._places),
                bracket=None,
                matched_bracket_ids=(),
                warning=SlipWarning(WarningCode.TAX_BRACKET_UNRESOLVED, message),
            )

        selected = matches[0]
        warning = None
        if len(matches) > 1:
            logger.warning(
                "tax_bracket_ambiguous",
                extra={
                    "income": str(income),
                    "bracket_ids": list(matched_ids),
                    "selected_bracket_id": selected.id,
                    "strict": self._strict,
                },
            )
            if self._strict:
                raise MisconfiguredTaxTableError(
                    str(income), "overlapping brackets", matched_ids
                )
            warning = SlipWarning(
                WarningCode.TAX_BRACKET_AMBIGUOUS,
                f"Income {income} matches brackets {list(matched_ids)}; "
                f"using bracket {selected.id}",
            )

        tax = bracket_tax(selected, income, self._places)
        logger.debug(
            "tax_bracket_resolved",
            extra={
                "income": str(income),
                "bracket_id": selected.id,
                "tax": str(tax),
            },
        )
        return TaxResolution(
            income=income,
            tax=tax,
            bracket=selected,
            matched_bracket_ids=matched_ids,
            warning=warning,
        )
