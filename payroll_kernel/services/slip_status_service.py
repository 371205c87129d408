"""
SalarySlipStatusService -- payment and cancellation of generated slips.

Responsibility:
    The only permitted changes to a persisted slip:

        generated --> paid        (sets paid_at, optional payment details)
        generated --> cancelled   (sets cancelled_at)

    Paid and cancelled are final.  Amounts are never touched; cancelling
    frees the (employee, period) key for a new generation.

Architecture position:
    Kernel > Services.  Flushes, never commits.

Failure modes:
    - SlipNotFoundError: unknown slip id.
    - InvalidSlipTransitionError: slip is not in GENERATED status.
    - ``mark_paid_many()`` never raises for a single slip; it reports
      each failure with the exception's ``code``.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.orm import Session

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.dtos import (
    BulkPaymentResult,
    SalarySlip,
    SlipPaymentFailure,
    SlipStatus,
)
from payroll_kernel.exceptions import (
    InvalidSlipTransitionError,
    PayrollKernelError,
    SlipNotFoundError,
)
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.salary_slip import SalarySlipModel
from payroll_kernel.services.base import BaseService

logger = get_logger("services.slip_status")


class SalarySlipStatusService(BaseService[SalarySlipModel]):
    """Status transitions for salary slips."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def mark_paid(
        self,
        slip_id: int,
        payment_method: str | None = None,
        payment_reference: str | None = None,
    ) -> SalarySlip:
        """Mark a generated slip paid, recording how it was paid when known."""
        model = self._load_generated(slip_id, SlipStatus.PAID)
        model.status = SlipStatus.PAID.value
        model.paid_at = self._clock.now()
        if payment_method is not None:
            model.payment_method = payment_method
        if payment_reference is not None:
            model.payment_reference = payment_reference
        self.session.flush()
        logger.info(
            "slip_marked_paid",
            extra={
                "slip_reference": model.slip_reference,
                "paid_at": model.paid_at,
                "payment_method": payment_method,
            },
        )
        return model.to_dto()

    def mark_paid_many(
        self,
        slip_ids: Iterable[int],
        payment_method: str | None = None,
        payment_reference: str | None = None,
    ) -> BulkPaymentResult:
        """
        Mark several slips paid with the same payment details.

        Each slip is updated in its own SAVEPOINT: a slip that cannot be
        paid is reported and leaves the others untouched.  Duplicate ids
        are processed once; results follow request order.
        """
        requested = tuple(dict.fromkeys(slip_ids))
        paid: list[SalarySlip] = []
        failed: list[SlipPaymentFailure] = []

        for slip_id in requested:
            try:
                with self.session.begin_nested():
                    paid.append(
                        self.mark_paid(slip_id, payment_method, payment_reference)
                    )
            except PayrollKernelError as exc:
                failed.append(SlipPaymentFailure(slip_id, exc.code, str(exc)))

        logger.info(
            "slips_bulk_paid",
            extra={
                "requested": len(requested),
                "paid": len(paid),
                "failed": len(failed),
                "payment_method": payment_method,
            },
        )
        return BulkPaymentResult(
            requested_slip_ids=requested,
            paid=tuple(paid),
            failed=tuple(failed),
        )

    def cancel(self, slip_id: int) -> SalarySlip:
        model = self._load_generated(slip_id, SlipStatus.CANCELLED)
        model.status = SlipStatus.CANCELLED.value
        model.cancelled_at = self._clock.now()
        self.session.flush()
        logger.info(
            "slip_cancelled",
            extra={
                "slip_reference": model.slip_reference,
                "cancelled_at": model.cancelled_at,
            },
        )
        return model.to_dto()

    def _load_generated(self, slip_id: int, target: SlipStatus) -> SalarySlipModel:
        model = self.session.get(SalarySlipModel, slip_id)
        if model is None:
            raise SlipNotFoundError(str(slip_id))
        if model.status != SlipStatus.GENERATED.value:
            logger.warning(
                "slip_transition_rejected",
                extra={
                    "slip_reference": model.slip_reference,
                    "from_status": model.status,
                    "to_status": target.value,
                },
            )
            raise InvalidSlipTransitionError(
                model.slip_reference, model.status, target.value
            )
        return model
