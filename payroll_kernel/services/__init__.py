"""Kernel services (write side and reference loading)."""

from payroll_kernel.services.payroll_engine import PayrollEngine
from payroll_kernel.services.reference_data_loader import ReferenceDataLoader
from payroll_kernel.services.slip_status_service import SalarySlipStatusService
from payroll_kernel.services.tax_preview_service import TaxPreviewService

__all__ = [
    "PayrollEngine",
    "ReferenceDataLoader",
    "SalarySlipStatusService",
    "TaxPreviewService",
]
