"""SQLAlchemy ORM models for the payroll kernel."""

from payroll_kernel.models.catalog import (
    BenefitTypeModel,
    TaxBracketModel,
    WithholdingTypeModel,
)
from payroll_kernel.models.compensation import BenefitRecordModel, DeductionRecordModel
from payroll_kernel.models.employee import EmployeeModel
from payroll_kernel.models.salary_slip import SalarySlipModel

__all__ = [
    "BenefitRecordModel",
    "BenefitTypeModel",
    "DeductionRecordModel",
    "EmployeeModel",
    "SalarySlipModel",
    "TaxBracketModel",
    "WithholdingTypeModel",
]
