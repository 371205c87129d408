"""EmployeeSelector -- roster lookups for payroll runs."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select

from payroll_kernel.domain.dtos import EmployeeSnapshot
from payroll_kernel.exceptions import EmployeeNotFoundError
from payroll_kernel.models.employee import EmployeeModel
from payroll_kernel.selectors.base import BaseSelector


class EmployeeSelector(BaseSelector[EmployeeModel]):
    """Read-only roster queries."""

    def get(self, employee_id: int) -> EmployeeSnapshot:
        model = self.session.get(EmployeeModel, employee_id)
        if model is None:
            raise EmployeeNotFoundError(employee_id)
        return model.to_dto()

    def get_many(self, employee_ids: Iterable[int]) -> dict[int, EmployeeSnapshot]:
        """Snapshots keyed by id; unknown ids are simply absent."""
        ids = list(employee_ids)
        if not ids:
            return {}
        models = self.session.execute(
            select(EmployeeModel).where(EmployeeModel.id.in_(ids))
        ).scalars()
        return {m.id: m.to_dto() for m in models}

    def active_ids(self) -> list[int]:
        """Ids of every active employee, ascending."""
        return list(
            self.session.execute(
                select(EmployeeModel.id)
                .where(EmployeeModel.is_active.is_(True))
                .order_by(EmployeeModel.id)
            ).scalars()
        )
