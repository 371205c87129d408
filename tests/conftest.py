"""
Pytest fixtures for the payroll kernel test suite.

Provides:
- An in-memory SQLite engine with all tables, created per test
- Database sessions and a session factory for batch runs
- Factory fixtures for employees, catalogs, records and tax brackets
- Structured log capture

Concurrency tests build their own file-backed engine (see
tests/concurrency/), since in-memory SQLite is one shared connection.
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from payroll_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from payroll_kernel.domain.clock import DeterministicClock
from payroll_kernel.domain.dtos import CalculationType
from payroll_kernel.domain.period import Period
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_kernel.models.catalog import (
    BenefitTypeModel,
    TaxBracketModel,
    WithholdingTypeModel,
)
from payroll_kernel.models.compensation import BenefitRecordModel, DeductionRecordModel
from payroll_kernel.models.employee import EmployeeModel
from payroll_kernel.services.payroll_engine import PayrollEngine
from payroll_kernel.services.reference_data_loader import ReferenceDataLoader
from payroll_kernel.selectors.employee_selector import EmployeeSelector

MARCH_2024 = Period(2024, 3)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, generate_slip):
            generate_slip(employee)
            logs = captured_logs()
            assert any(r["message"] == "slip_generated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine():
    """Fresh in-memory database with all tables, torn down after the test."""
    engine = init_engine_from_url("sqlite://")
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    Tests that hand work to a PayrollRunCoordinator must ``commit()`` their
    seed data first: the coordinator opens its own sessions on the same
    in-memory connection.
    """
    sess = get_session()
    yield sess
    try:
        sess.rollback()
    finally:
        sess.close()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


# Clock fixtures


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock(datetime(2024, 3, 28, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def march_2024() -> Period:
    return MARCH_2024


# =============================================================================
# Test data generators
# =============================================================================


@pytest.fixture
def create_employee(session: Session):
    """Factory fixture to create roster entries."""

    def _create_employee(
        full_name: str = "Test Employee",
        base_salary: Decimal | None = Decimal("1000.00"),
        is_active: bool = True,
    ) -> EmployeeModel:
        employee = EmployeeModel(
            full_name=full_name,
            base_salary=base_salary,
            is_active=is_active,
        )
        session.add(employee)
        session.flush()
        return employee

    return _create_employee


@pytest.fixture
def create_benefit_type(session: Session):
    """Factory fixture to create benefit catalog entries."""

    def _create_benefit_type(title: str, is_taxable: bool = True) -> BenefitTypeModel:
        benefit_type = BenefitTypeModel(title=title, is_taxable=is_taxable)
        session.add(benefit_type)
        session.flush()
        return benefit_type

    return _create_benefit_type


@pytest.fixture
def create_withholding_type(session: Session):
    """Factory fixture to create withholding catalog entries."""

    def _create_withholding_type(
        title: str,
        is_statutory: bool = False,
    ) -> WithholdingTypeModel:
        withholding_type = WithholdingTypeModel(title=title, is_statutory=is_statutory)
        session.add(withholding_type)
        session.flush()
        return withholding_type

    return _create_withholding_type


def _record_kwargs(employee, amount, calculation_type, type_model, **extra):
    if isinstance(calculation_type, CalculationType):
        calculation_type = calculation_type.value
    return dict(
        employee_id=employee.id,
        type_id=type_model.id if type_model is not None else None,
        calculation_type=calculation_type,
        amount=Decimal(str(amount)),
        **extra,
    )


@pytest.fixture
def create_benefit(session: Session):
    """Factory fixture to attach a benefit record to an employee."""

    def _create_benefit(
        employee: EmployeeModel,
        amount,
        calculation_type: CalculationType | str = CalculationType.FIXED,
        benefit_type: BenefitTypeModel | None = None,
        effective_from=None,
        effective_until=None,
        is_active: bool = True,
    ) -> BenefitRecordModel:
        record = BenefitRecordModel(
            **_record_kwargs(
                employee, amount, calculation_type, benefit_type,
                effective_from=effective_from,
                effective_until=effective_until,
                is_active=is_active,
            )
        )
        session.add(record)
        session.flush()
        return record

    return _create_benefit


@pytest.fixture
def create_deduction(session: Session):
    """Factory fixture to attach a deduction record to an employee."""

    def _create_deduction(
        employee: EmployeeModel,
        amount,
        calculation_type: CalculationType | str = CalculationType.FIXED,
        withholding_type: WithholdingTypeModel | None = None,
        effective_from=None,
        effective_until=None,
        is_active: bool = True,
    ) -> DeductionRecordModel:
        record = DeductionRecordModel(
            **_record_kwargs(
                employee, amount, calculation_type, withholding_type,
                effective_from=effective_from,
                effective_until=effective_until,
                is_active=is_active,
            )
        )
        session.add(record)
        session.flush()
        return record

    return _create_deduction


@pytest.fixture
def create_tax_bracket(session: Session):
    """Factory fixture to add a row to the tax table."""

    def _create_tax_bracket(
        income_from,
        income_to,
        percentage,
        fixed_amount="0",
        title: str | None = None,
        is_active: bool = True,
    ) -> TaxBracketModel:
        bracket = TaxBracketModel(
            title=title or f"{income_from}-{income_to}",
            income_from=Decimal(str(income_from)),
            income_to=Decimal(str(income_to)),
            fixed_amount=Decimal(str(fixed_amount)),
            percentage=Decimal(str(percentage)),
            is_active=is_active,
        )
        session.add(bracket)
        session.flush()
        return bracket

    return _create_tax_bracket


# =============================================================================
# Engine wiring
# =============================================================================


@pytest.fixture
def payroll_engine(session, deterministic_clock) -> PayrollEngine:
    return PayrollEngine(session, deterministic_clock)


@pytest.fixture
def generate_slip(session, payroll_engine, march_2024):
    """Generate a slip the way a run does: snapshot, tax table, engine."""

    def _generate(employee: EmployeeModel, period: Period | None = None, engine=None):
        snapshot = EmployeeSelector(session).get(employee.id)
        brackets = ReferenceDataLoader(session).load_tax_brackets()
        return (engine or payroll_engine).generate(
            snapshot, period or march_2024, brackets,
        )

    return _generate
