"""Read-only query selectors."""

from payroll_kernel.selectors.employee_selector import EmployeeSelector
from payroll_kernel.selectors.salary_slip_selector import SalarySlipSelector

__all__ = [
    "EmployeeSelector",
    "SalarySlipSelector",
]
