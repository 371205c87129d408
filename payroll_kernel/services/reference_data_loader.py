"""
Reference Data Loader - Loads payroll reference data for the pure domain layer.

The ReferenceDataLoader queries the database to build a PayrollReferenceData
snapshot (tax brackets, benefit/withholding types, benefit and deduction
records) that is passed to the pure CompensationAggregator and
TaxBracketResolver.

This keeps database access out of the pure domain layer.  A snapshot is
built once per payroll run and discarded with it; nothing is cached across
runs, so catalog edits take effect on the next run.
"""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.dtos import (
    CompensationRecord,
    PayrollReferenceData,
    TaxBracket,
)
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.catalog import (
    BenefitTypeModel,
    TaxBracketModel,
    WithholdingTypeModel,
)
from payroll_kernel.models.compensation import BenefitRecordModel, DeductionRecordModel

logger = get_logger("services.reference_data_loader")


class ReferenceDataLoader:
    """
    Loads reference data from the database for the pure payroll layer.

    Creates a PayrollReferenceData object containing:
    - All tax brackets (the resolver filters inactive ones)
    - Benefit and withholding types by id
    - Benefit and deduction records, grouped by employee
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def load(
        self,
        employee_ids: Iterable[int] | None = None,
        tax_brackets: Iterable[TaxBracket] | None = None,
    ) -> PayrollReferenceData:
        """
        Load a reference snapshot.

        Args:
            employee_ids: Restrict records to these employees (None = all).
            tax_brackets: Use these brackets instead of loading the table.

        Returns:
            PayrollReferenceData for the pure layer.
        """
        ids = None if employee_ids is None else sorted(set(employee_ids))

        brackets = (
            tuple(tax_brackets) if tax_brackets is not None else self.load_tax_brackets()
        )
        benefit_types = {
            m.id: m.to_dto()
            for m in self._session.execute(select(BenefitTypeModel)).scalars()
        }
        withholding_types = {
            m.id: m.to_dto()
            for m in self._session.execute(select(WithholdingTypeModel)).scalars()
        }

        records_by_employee: dict[int, list[CompensationRecord]] = {}
        for model_cls in (BenefitRecordModel, DeductionRecordModel):
            for record in self._load_records(model_cls, ids):
                records_by_employee.setdefault(record.employee_id, []).append(record)

        reference = PayrollReferenceData(
            tax_brackets=brackets,
            benefit_types=benefit_types,
            withholding_types=withholding_types,
            records_by_employee={
                emp_id: tuple(sorted(records, key=lambda r: (r.kind.value, r.id)))
                for emp_id, records in records_by_employee.items()
            },
            loaded_at=self._clock.now(),
        )

        logger.debug(
            "reference_data_loaded",
            extra={
                "tax_bracket_count": len(brackets),
                "benefit_type_count": len(benefit_types),
                "withholding_type_count": len(withholding_types),
                "employee_count": len(records_by_employee),
            },
        )
        return reference

    def load_tax_brackets(self, active_only: bool = False) -> tuple[TaxBracket, ...]:
        """Tax table ordered by id."""
        stmt = select(TaxBracketModel).order_by(TaxBracketModel.id)
        if active_only:
            stmt = stmt.where(TaxBracketModel.is_active.is_(True))
        return tuple(m.to_dto() for m in self._session.execute(stmt).scalars())

    def _load_records(self, model_cls, employee_ids: list[int] | None):
        stmt = select(model_cls).order_by(model_cls.id)
        if employee_ids is not None:
            if not employee_ids:
                return []
            stmt = stmt.where(model_cls.employee_id.in_(employee_ids))
        return [m.to_dto() for m in self._session.execute(stmt).scalars()]
