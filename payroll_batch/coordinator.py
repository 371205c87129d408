"""
PayrollRunCoordinator -- bulk salary slip generation for one period.

Contract:
    ``run_batch()`` generates a slip for every requested employee and
    returns a PayrollRunResult.  It never raises for a per-employee
    problem; failures are collected with the exception's ``code`` as the
    reason (``UNHANDLED_EXCEPTION`` for anything outside the kernel
    hierarchy).

Architecture: payroll_batch.  Imports kernel services, selectors and the
    db session factory; the kernel never imports payroll_batch.

Invariants enforced:
    - Reference data (tax table, catalogs, records) is loaded once per run
      and shared read-only by every employee in that run.
    - Each employee is generated and committed in its own session, so one
      failure never rolls back another employee's slip.
    - Same (employee, period) work is serialized by an in-process keyed
      lock; the partial unique index covers other processes.
    - Employees run on a thread pool of up to ``max_workers``, except on
      an engine that shares one connection (in-memory SQLite), where the
      run is sequential.
    - Results are reported in request order; duplicate ids are processed
      once.
    - All timestamps from the injected Clock.
"""

from __future__ import annotations

import contextvars
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from payroll_kernel.db.engine import session_scope, uses_single_connection
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.dtos import (
    EmployeeSnapshot,
    PayrollReferenceData,
    PayrollRules,
    SalarySlip,
    TaxBracket,
)
from payroll_kernel.domain.period import Period
from payroll_kernel.exceptions import EmployeeNotFoundError, PayrollKernelError
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_kernel.selectors.employee_selector import EmployeeSelector
from payroll_kernel.services.payroll_engine import PayrollEngine
from payroll_kernel.services.reference_data_loader import ReferenceDataLoader

from payroll_batch.locks import SLIP_GENERATION_LOCKS, KeyedLock
from payroll_batch.types import (
    UNHANDLED_EXCEPTION,
    PayrollRunRequest,
    PayrollRunResult,
    RunFailure,
    RunWarning,
)

logger = get_logger("batch.coordinator")


class PayrollRunCoordinator:
    """Runs payroll for a list of employees.

    Contract:
        - ``run_request()`` validates the request's month/year and delegates
          to ``run_batch()``.
        - ``run_batch()`` commits each successful slip independently.

    Non-goals:
        - Does NOT retry failed employees.
        - Does NOT cache reference data beyond a single run.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        rules: PayrollRules | None = None,
        max_workers: int = 1,
        locks: KeyedLock | None = None,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._rules = rules or PayrollRules()
        self._max_workers = max_workers
        self._locks = locks or SLIP_GENERATION_LOCKS

    @classmethod
    def from_settings(
        cls,
        session_factory: sessionmaker[Session],
        settings,
        clock: Clock | None = None,
    ) -> PayrollRunCoordinator:
        """Build a coordinator from ``payroll_config.PayrollSettings``."""
        from payroll_config.bridges import build_payroll_rules

        return cls(
            session_factory,
            clock=clock,
            rules=build_payroll_rules(settings),
            max_workers=settings.max_workers,
        )

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def run_request(self, request: PayrollRunRequest) -> PayrollRunResult:
        """Run payroll for a ``{employee_ids, month, year}`` request."""
        return self.run_batch(request.employee_ids, request.period)

    def run_batch(
        self,
        employee_ids: Iterable[int],
        period: Period,
    ) -> PayrollRunResult:
        run_id = str(uuid4())
        requested = tuple(dict.fromkeys(employee_ids))
        started_at = self._clock.now()
        start_time = time.monotonic()

        with LogContext.bind(run_id=run_id, period=period.label):
            logger.info(
                "payroll_run_started",
                extra={
                    "employee_count": len(requested),
                    "max_workers": self._max_workers,
                },
            )

            with session_scope(self._session_factory) as session:
                loader = ReferenceDataLoader(session, self._clock)
                brackets = loader.load_tax_brackets()
                reference = loader.load(employee_ids=requested, tax_brackets=brackets)
                employees = EmployeeSelector(session).get_many(requested)

            outcomes = self._process_all(requested, period, employees, brackets, reference)

            succeeded: list[SalarySlip] = []
            failed: list[RunFailure] = []
            warnings: list[RunWarning] = []
            for employee_id in requested:
                outcome = outcomes[employee_id]
                if isinstance(outcome, RunFailure):
                    failed.append(outcome)
                    continue
                succeeded.append(outcome)
                warnings.extend(
                    RunWarning(employee_id, outcome.slip_reference, w)
                    for w in outcome.warnings
                )

            completed_at = self._clock.now()
            result = PayrollRunResult(
                run_id=run_id,
                period=period.label,
                requested_employee_ids=requested,
                succeeded=tuple(succeeded),
                failed=tuple(failed),
                warnings=tuple(warnings),
                started_at=started_at,
                completed_at=completed_at,
                duration_ms=int((time.monotonic() - start_time) * 1000),
            )

            logger.info(
                "payroll_run_completed",
                extra={
                    "requested": result.requested,
                    "succeeded": result.succeeded_count,
                    "failed": result.failed_count,
                    "warning_count": len(result.warnings),
                    "duration_ms": result.duration_ms,
                },
            )
            return result

    # -------------------------------------------------------------------------
    # Per-employee processing
    # -------------------------------------------------------------------------

    def _process_all(
        self,
        employee_ids: tuple[int, ...],
        period: Period,
        employees: dict[int, EmployeeSnapshot],
        brackets: tuple[TaxBracket, ...],
        reference: PayrollReferenceData,
    ) -> dict[int, SalarySlip | RunFailure]:
        args = (period, employees, brackets, reference)

        workers = self._worker_count(len(employee_ids))
        if workers == 1:
            return {emp_id: self._process_one(emp_id, *args) for emp_id in employee_ids}

        outcomes: dict[int, SalarySlip | RunFailure] = {}
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="payroll") as pool:
            # Each task runs in a copy of the caller's context (run_id, period)
            futures = {
                pool.submit(
                    contextvars.copy_context().run, self._process_one, emp_id, *args
                ): emp_id
                for emp_id in employee_ids
            }
            for future in as_completed(futures):
                outcomes[futures[future]] = future.result()
        return outcomes

    def _worker_count(self, employee_count: int) -> int:
        workers = max(1, min(self._max_workers, employee_count))
        if workers > 1 and uses_single_connection(self._session_factory.kw.get("bind")):
            logger.warning(
                "parallel_run_disabled",
                extra={
                    "reason": "single_connection_engine",
                    "max_workers": self._max_workers,
                },
            )
            return 1
        return workers

    def _process_one(
        self,
        employee_id: int,
        period: Period,
        employees: dict[int, EmployeeSnapshot],
        brackets: tuple[TaxBracket, ...],
        reference: PayrollReferenceData,
    ) -> SalarySlip | RunFailure:
        with LogContext.bind(employee_id=employee_id):
            try:
                employee = employees.get(employee_id)
                if employee is None:
                    raise EmployeeNotFoundError(employee_id)
                with self._locks.hold((employee_id, period.label)):
                    with session_scope(self._session_factory) as session:
                        engine = PayrollEngine(session, self._clock, self._rules)
                        return engine.generate(employee, period, brackets, reference)
            except PayrollKernelError as exc:
                logger.info(
                    "payroll_employee_failed",
                    extra={"reason_code": exc.code, "error": str(exc)},
                )
                return RunFailure(employee_id, exc.code, str(exc))
            except Exception as exc:
                logger.error(
                    "payroll_employee_unhandled_error",
                    extra={"reason_code": UNHANDLED_EXCEPTION},
                    exc_info=True,
                )
                return RunFailure(employee_id, UNHANDLED_EXCEPTION, str(exc))
