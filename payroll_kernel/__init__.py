"""
Payroll Kernel - salary slip generation core

Turns an employee's base salary, time-bounded benefit/deduction records and
a bracketed tax table into immutable salary slips:
- Explicit salary Period value type
- Flat-plus-marginal tax bracket resolution
- Deterministic benefit/deduction aggregation
- Atomic, duplicate-safe slip persistence
"""

__version__ = "0.1.0"
