"""End-to-end tests for the payroll command line."""

import json
import logging
from decimal import Decimal

import pytest
import yaml

from payroll_kernel.db.engine import reset_engine, session_scope, get_session_factory
from payroll_kernel.domain.dtos import SlipStatus
from payroll_kernel.models.catalog import TaxBracketModel
from payroll_kernel.models.employee import EmployeeModel
from payroll_kernel.selectors.salary_slip_selector import SalarySlipSelector
from scripts.run_payroll import main


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    monkeypatch.delenv("PAYROLL_CONFIG", raising=False)
    monkeypatch.delenv("PAYROLL_DATABASE_URL", raising=False)
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    assert main(["--db-url", url, "init-db"]) == 0
    with session_scope(get_session_factory()) as session:
        session.add(TaxBracketModel(
            title="Standard",
            income_from=Decimal("0"),
            income_to=Decimal("5000"),
            percentage=Decimal("10"),
        ))
        session.add_all([
            EmployeeModel(full_name="A", base_salary=Decimal("1000.00")),
            EmployeeModel(full_name="B", base_salary=Decimal("2000.00")),
            EmployeeModel(full_name="C", base_salary=Decimal("3000.00"), is_active=False),
        ])
    yield url
    logging.disable(logging.NOTSET)
    reset_engine()


def test_run_all_active_json(db_url, capsys):
    capsys.readouterr()

    exit_code = main(["--db-url", db_url, "run", "--period", "2024-03", "--all-active", "--json"])

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert output["period"] == "2024-03"
    assert output["message"] == "Successfully generated for 2 of 2 employees"
    assert len(output["succeeded"]) == 2


def test_rerun_reports_failures(db_url, capsys):
    main(["--db-url", db_url, "run", "--period", "2024-03", "--employee-id", "1"])
    capsys.readouterr()

    exit_code = main(["--db-url", db_url, "run", "--period", "2024-03",
                      "--employee-id", "1", "--employee-id", "3"])

    out = capsys.readouterr().out
    assert exit_code == 2
    assert "Successfully generated for 0 of 2 employees" in out
    assert "DUPLICATE_SLIP" in out
    assert "EMPLOYEE_INACTIVE" in out


def test_preview(db_url, capsys):
    assert main(["--db-url", db_url, "preview", "--income", "1200"]) == 0

    out = capsys.readouterr().out
    assert "120.00 USD" in out
    assert "Standard" in out


def test_currency_from_config(db_url, tmp_path, capsys):
    config = tmp_path / "eur.yaml"
    config.write_text(yaml.safe_dump({"payroll": {"currency": "EUR"}}))

    assert main(["--config", str(config), "--db-url", db_url,
                 "preview", "--income", "1200"]) == 0

    assert "120.00 EUR" in capsys.readouterr().out


def test_summary(db_url, capsys):
    main(["--db-url", db_url, "run", "--period", "2024-03", "--all-active"])
    capsys.readouterr()

    assert main(["--db-url", db_url, "summary", "--period", "2024-03"]) == 0

    out = capsys.readouterr().out
    assert "PAYROLL SUMMARY 2024-03" in out
    assert "YEAR TO DATE 2024" in out
    assert out.count("2700.00 USD") == 2


def test_pay_reports_each_slip(db_url, capsys):
    main(["--db-url", db_url, "run", "--period", "2024-03", "--all-active"])
    capsys.readouterr()

    exit_code = main(["--db-url", db_url, "pay", "--slip-id", "1", "--slip-id", "99",
                      "--method", "bank_transfer", "--reference", "BATCH-7"])

    out = capsys.readouterr().out
    assert exit_code == 2
    assert "1 of 2 slips paid" in out
    assert "SLIP_NOT_FOUND" in out
    with session_scope(get_session_factory()) as session:
        slip = SalarySlipSelector(session).get_by_id(1)
    assert slip.status is SlipStatus.PAID
    assert (slip.payment_method, slip.payment_reference) == ("bank_transfer", "BATCH-7")


def test_bad_period(db_url, capsys):
    assert main(["--db-url", db_url, "summary", "--period", "March"]) == 1
    assert "ERROR" in capsys.readouterr().err
