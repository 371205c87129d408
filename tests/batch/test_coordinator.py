"""
Tests for PayrollRunCoordinator -- bulk generation with partial failure.

Covers:
- Mixed run: success, zero-salary success, duplicate failure
- Request order, de-duplication of ids, summary message
- Failure reason codes: not found, inactive, invalid record, unhandled
- Warnings attributed to employees
- Request validation and construction from settings
- Sequential fallback on a single-connection engine
"""

from decimal import Decimal

import pytest

from payroll_batch.coordinator import PayrollRunCoordinator
from payroll_batch.types import UNHANDLED_EXCEPTION, PayrollRunRequest
from payroll_config.schema import PayrollSettings
from payroll_kernel.domain.dtos import CalculationType, IncomeBasis
from payroll_kernel.exceptions import InvalidPeriodError
from payroll_kernel.selectors.salary_slip_selector import SalarySlipSelector
from payroll_kernel.services.payroll_engine import PayrollEngine


@pytest.fixture
def coordinator(session_factory, deterministic_clock):
    return PayrollRunCoordinator(session_factory, deterministic_clock, max_workers=1)


@pytest.fixture
def roster(session, create_employee, create_benefit, create_tax_bracket, generate_slip):
    """A: regular. B: no base salary, 10% benefit. C: already has a March slip."""
    create_tax_bracket("0", "5000", "10")
    a = create_employee("A", base_salary=Decimal("1000.00"))
    b = create_employee("B", base_salary=None)
    create_benefit(b, "10", calculation_type=CalculationType.PERCENTAGE)
    c = create_employee("C", base_salary=Decimal("1500.00"))
    generate_slip(c)
    session.commit()
    return a, b, c


class TestMixedRun:
    def test_partial_success(self, session, coordinator, roster, march_2024):
        a, b, c = roster

        result = coordinator.run_batch([a.id, b.id, c.id], march_2024)

        assert result.requested == 3
        assert result.succeeded_count == 2
        assert result.failed_count == 1
        assert not result.is_complete
        assert result.failure_for(c.id).reason_code == "DUPLICATE_SLIP"
        assert result.summary_message() == "Successfully generated for 2 of 3 employees"

        slips = SalarySlipSelector(session).list_slips(period=march_2024)
        assert len(slips) == 3

    def test_zero_salary_employee_succeeds(self, coordinator, roster, march_2024):
        a, b, c = roster

        result = coordinator.run_batch([b.id], march_2024)

        slip = result.succeeded[0]
        assert slip.employee_id == b.id
        assert slip.benefits_breakdown[0].amount == Decimal("0.00")
        assert slip.net_payable == Decimal("0.00")

    def test_results_in_request_order(self, coordinator, roster, march_2024):
        a, b, c = roster

        result = coordinator.run_batch([b.id, c.id, a.id], march_2024)

        assert [s.employee_id for s in result.succeeded] == [b.id, a.id]
        assert result.requested_employee_ids == (b.id, c.id, a.id)

    def test_duplicate_ids_processed_once(self, session, coordinator, roster, march_2024):
        a, b, c = roster

        result = coordinator.run_batch([a.id, a.id, b.id], march_2024)

        assert result.requested == 2
        assert result.succeeded_count == 2
        assert result.failed_count == 0
        assert len(SalarySlipSelector(session).list_slips(employee_id=a.id)) == 1

    def test_rerun_fails_every_employee_as_duplicate(self, coordinator, roster, march_2024):
        a, b, c = roster
        coordinator.run_batch([a.id, b.id], march_2024)

        result = coordinator.run_batch([a.id, b.id], march_2024)

        assert result.succeeded_count == 0
        assert {f.reason_code for f in result.failed} == {"DUPLICATE_SLIP"}

    def test_empty_request(self, coordinator, db_engine, march_2024):
        result = coordinator.run_batch([], march_2024)

        assert result.requested == 0
        assert result.is_complete
        assert result.summary_message() == "Successfully generated for 0 of 0 employees"


class TestFailureCodes:
    def test_unknown_employee(self, coordinator, roster, march_2024):
        a, _, _ = roster

        result = coordinator.run_batch([a.id, 9999], march_2024)

        assert result.succeeded_count == 1
        assert result.failure_for(9999).reason_code == "EMPLOYEE_NOT_FOUND"

    def test_inactive_employee(self, session, coordinator, create_employee, march_2024):
        inactive = create_employee("Gone", is_active=False)
        session.commit()

        result = coordinator.run_batch([inactive.id], march_2024)

        assert result.failure_for(inactive.id).reason_code == "EMPLOYEE_INACTIVE"

    def test_invalid_record_isolated(
        self, session, coordinator, create_employee, create_deduction,
        create_tax_bracket, march_2024,
    ):
        create_tax_bracket("0", "5000", "10")
        good = create_employee("Good")
        bad = create_employee("Bad")
        create_deduction(bad, "120", calculation_type=CalculationType.PERCENTAGE)
        session.commit()

        result = coordinator.run_batch([bad.id, good.id], march_2024)

        assert result.failure_for(bad.id).reason_code == "INVALID_RECORD"
        assert [s.employee_id for s in result.succeeded] == [good.id]
        assert SalarySlipSelector(session).find_active(bad.id, march_2024) is None

    def test_unexpected_exception(
        self, coordinator, roster, march_2024, monkeypatch, captured_logs,
    ):
        a, b, _ = roster
        original = PayrollEngine.generate

        def flaky_generate(self, employee, *args, **kwargs):
            if employee.id == a.id:
                raise RuntimeError("disk on fire")
            return original(self, employee, *args, **kwargs)

        monkeypatch.setattr(PayrollEngine, "generate", flaky_generate)

        result = coordinator.run_batch([a.id, b.id], march_2024)

        failure = result.failure_for(a.id)
        assert failure.reason_code == UNHANDLED_EXCEPTION
        assert "disk on fire" in failure.message
        assert result.succeeded_count == 1
        assert any(
            r["message"] == "payroll_employee_unhandled_error" for r in captured_logs()
        )


class TestWarningsAndLogging:
    def test_warnings_attributed(self, session, coordinator, create_employee,
                                 create_tax_bracket, march_2024):
        create_tax_bracket("0", "1000", "10")
        rich = create_employee("Rich", base_salary=Decimal("9000.00"))
        session.commit()

        result = coordinator.run_batch([rich.id], march_2024)

        assert result.is_complete
        assert [(w.employee_id, w.code) for w in result.warnings] == [
            (rich.id, "TAX_BRACKET_UNRESOLVED"),
        ]
        assert result.warnings[0].slip_reference == result.succeeded[0].slip_reference

    def test_run_logs(self, coordinator, roster, march_2024, captured_logs):
        a, _, _ = roster

        result = coordinator.run_batch([a.id], march_2024)

        logs = captured_logs()
        started = [r for r in logs if r["message"] == "payroll_run_started"]
        completed = [r for r in logs if r["message"] == "payroll_run_completed"]
        assert started[0]["run_id"] == result.run_id
        assert started[0]["period"] == "2024-03"
        assert completed[0]["succeeded"] == 1
        generated = [r for r in logs if r["message"] == "slip_generated"]
        assert generated[-1]["run_id"] == result.run_id


class TestWorkerCount:
    def test_parallel_request_on_in_memory_database_runs_sequentially(
        self, session, session_factory, deterministic_clock, create_employee,
        create_tax_bracket, march_2024, captured_logs,
    ):
        create_tax_bracket("0", "5000", "10")
        ids = [
            create_employee(f"E{i}", base_salary=Decimal("1000.00")).id
            for i in range(20)
        ]
        session.commit()
        coordinator = PayrollRunCoordinator(
            session_factory, deterministic_clock, max_workers=4,
        )

        result = coordinator.run_batch(ids, march_2024)

        assert result.failed == ()
        assert result.succeeded_count == 20
        assert [s.employee_id for s in result.succeeded] == ids
        disabled = [r for r in captured_logs() if r["message"] == "parallel_run_disabled"]
        assert disabled[0]["max_workers"] == 4

    def test_single_employee_never_needs_a_pool(
        self, session_factory, deterministic_clock, roster, march_2024, captured_logs,
    ):
        a, b, c = roster
        coordinator = PayrollRunCoordinator(
            session_factory, deterministic_clock, max_workers=4,
        )

        result = coordinator.run_batch([a.id], march_2024)

        assert result.is_complete
        assert not any(r["message"] == "parallel_run_disabled" for r in captured_logs())


class TestRequests:
    def test_run_request(self, coordinator, roster):
        a, _, _ = roster

        result = coordinator.run_request(
            PayrollRunRequest(employee_ids=(a.id,), month=4, year=2024)
        )

        assert result.period == "2024-04"
        assert result.succeeded[0].salary_period == "2024-04"

    def test_invalid_month_rejected(self, coordinator, db_engine):
        with pytest.raises(InvalidPeriodError):
            coordinator.run_request(PayrollRunRequest(employee_ids=(1,), month=13, year=2024))

    def test_from_settings(self, session, session_factory, create_employee,
                           create_tax_bracket, deterministic_clock, march_2024):
        create_tax_bracket("0", "20000", "10")
        employee = create_employee(base_salary=Decimal("1000.00"))
        session.commit()
        settings = PayrollSettings(
            income_basis=IncomeBasis.ANNUALIZED,
            max_workers=1,
            slip_reference_prefix="PAY",
        )

        coordinator = PayrollRunCoordinator.from_settings(
            session_factory, settings, deterministic_clock,
        )
        result = coordinator.run_batch([employee.id], march_2024)

        slip = result.succeeded[0]
        assert slip.slip_reference.startswith("PAY-2024-03-")
        assert slip.statutory_tax == Decimal("100.00")

    def test_rejects_zero_workers(self, session_factory):
        with pytest.raises(ValueError):
            PayrollRunCoordinator(session_factory, max_workers=0)
