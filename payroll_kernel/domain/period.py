"""
Period -- salary period value type and shared date arithmetic.

Responsibility:
    One explicit value type for "which payroll cycle", built once at the
    batch boundary (from month/year integers or a ``YYYY-MM`` string) and
    passed through every component.  All date arithmetic the kernel needs
    (month end, effective-window checks) lives here and nowhere else.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - month is 1..12 and year is 1900..9999.
    - reference_date is the last calendar day of the month (end-of-period
      convention): a record that starts mid-month applies to that month's
      slip, one that ends mid-month does not.
    - Effective windows are inclusive on both ends; a None bound is
      unbounded.

Failure modes:
    - InvalidPeriodError for out-of-range components or malformed strings.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date

from payroll_kernel.exceptions import InvalidPeriodError

_LABEL_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})$")

MIN_YEAR = 1900
MAX_YEAR = 9999


def month_end(year: int, month: int) -> date:
    """Last calendar day of the given month."""
    return date(year, month, calendar.monthrange(year, month)[1])


def window_covers(
    effective_from: date | None,
    effective_until: date | None,
    on_date: date,
) -> bool:
    """True if ``on_date`` lies in [effective_from, effective_until], None = unbounded."""
    if effective_from is not None and on_date < effective_from:
        return False
    if effective_until is not None and on_date > effective_until:
        return False
    return True


@dataclass(frozen=True, order=True)
class Period:
    """
    A calendar year+month identifying one payroll cycle.

    Ordered chronologically, hashable, and rendered as ``YYYY-MM``.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if isinstance(self.year, bool) or not isinstance(self.year, int):
            raise InvalidPeriodError(f"{self.year}-{self.month}", "year must be an integer")
        if isinstance(self.month, bool) or not isinstance(self.month, int):
            raise InvalidPeriodError(f"{self.year}-{self.month}", "month must be an integer")
        if not 1 <= self.month <= 12:
            raise InvalidPeriodError(
                f"{self.year}-{self.month}", "month must be between 1 and 12"
            )
        if not MIN_YEAR <= self.year <= MAX_YEAR:
            raise InvalidPeriodError(
                f"{self.year}-{self.month}",
                f"year must be between {MIN_YEAR} and {MAX_YEAR}",
            )

    @classmethod
    def of(cls, year: int, month: int) -> Period:
        return cls(year=year, month=month)

    @classmethod
    def parse(cls, value: str) -> Period:
        """Parse a ``YYYY-MM`` label."""
        if not isinstance(value, str):
            raise InvalidPeriodError(repr(value), "expected a 'YYYY-MM' string")
        match = _LABEL_PATTERN.match(value.strip())
        if match is None:
            raise InvalidPeriodError(value, "expected format 'YYYY-MM'")
        return cls(year=int(match.group(1)), month=int(match.group(2)))

    @classmethod
    def from_date(cls, value: date) -> Period:
        return cls(year=value.year, month=value.month)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def start_date(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end_date(self) -> date:
        return month_end(self.year, self.month)

    @property
    def reference_date(self) -> date:
        """Date used to match effective windows (end of period)."""
        return self.end_date

    def contains(self, value: date) -> bool:
        return self.start_date <= value <= self.end_date

    def next(self) -> Period:
        if self.month == 12:
            return Period(self.year + 1, 1)
        return Period(self.year, self.month + 1)

    def previous(self) -> Period:
        if self.month == 1:
            return Period(self.year - 1, 12)
        return Period(self.year, self.month - 1)

    def __str__(self) -> str:
        return self.label
