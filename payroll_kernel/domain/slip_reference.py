"""Human-readable unique salary slip references."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from payroll_kernel.domain.period import Period
from payroll_kernel.utils.hashing import short_hash

DEFAULT_PREFIX = "SLIP"


def build_slip_reference(
    period: Period,
    employee_id: int,
    payload: dict[str, Any],
    generated_at: datetime,
    prefix: str = DEFAULT_PREFIX,
) -> str:
    """
    ``{prefix}-{YYYY-MM}-{employee_id}-{hash8}``.

    The hash covers the canonical slip payload and the generation
    timestamp.  Callers put the per-period generation number in the
    payload, so a slip regenerated after cancellation gets a new
    reference even with identical amounts and timestamp.
    """
    digest = short_hash({"slip": payload, "generated_at": generated_at})
    return f"{prefix}-{period.label}-{employee_id}-{digest}"
