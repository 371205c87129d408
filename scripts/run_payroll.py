#!/usr/bin/env python3
"""
Payroll command line.

Usage:
    python3 scripts/run_payroll.py init-db
    python3 scripts/run_payroll.py run --period 2024-03 --employee-id 1 --employee-id 2
    python3 scripts/run_payroll.py run --period 2024-03 --all-active
    python3 scripts/run_payroll.py preview --income 1200
    python3 scripts/run_payroll.py summary --period 2024-03
    python3 scripts/run_payroll.py pay --slip-id 1 --slip-id 2 --method bank_transfer

Settings come from payroll_config.get_active_config() (PAYROLL_CONFIG,
PAYROLL_DATABASE_URL); --config and --db-url override them.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from payroll_config import get_active_config
from payroll_config.bridges import build_payroll_rules
from payroll_kernel.domain.period import Period
from payroll_kernel.exceptions import PayrollKernelError
from payroll_kernel.logging_config import configure_logging


def banner(title: str) -> None:
    print()
    print("=" * 72)
    print(f"  {title}")
    print("=" * 72)


def field(label: str, value, indent: int = 2) -> None:
    print(f"{' ' * indent}{label:<22} {value}")


def money(amount, settings) -> str:
    return f"{amount} {settings.currency}"


# =============================================================================
# Commands
# =============================================================================


def cmd_init_db(args, settings) -> int:
    from payroll_kernel.db.engine import create_tables

    create_tables()
    print(f"Tables created in {settings.database_url}")
    return 0


def cmd_run(args, settings) -> int:
    from payroll_batch.coordinator import PayrollRunCoordinator
    from payroll_kernel.db.engine import get_session_factory, session_scope
    from payroll_kernel.selectors.employee_selector import EmployeeSelector

    period = Period.parse(args.period)
    factory = get_session_factory()

    if args.all_active:
        with session_scope(factory) as session:
            employee_ids = EmployeeSelector(session).active_ids()
    else:
        employee_ids = args.employee_id

    coordinator = PayrollRunCoordinator.from_settings(factory, settings)
    result = coordinator.run_batch(employee_ids, period)

    if args.json:
        print(json.dumps(
            {
                "run_id": result.run_id,
                "period": result.period,
                "currency": settings.currency,
                "message": result.summary_message(),
                "succeeded": [s.slip_reference for s in result.succeeded],
                "failed": [
                    {"employee_id": f.employee_id, "reason_code": f.reason_code,
                     "message": f.message}
                    for f in result.failed
                ],
                "warnings": [
                    {"employee_id": w.employee_id, "code": w.code,
                     "message": w.warning.message}
                    for w in result.warnings
                ],
            },
            indent=2,
        ))
        return 0 if result.is_complete else 2

    banner(f"PAYROLL RUN {result.period}")
    field("run_id", result.run_id)
    field("result", result.summary_message())
    field("duration_ms", result.duration_ms)
    for slip in result.succeeded:
        net = money(slip.net_payable, settings)
        field(f"employee {slip.employee_id}", f"{slip.slip_reference}  net {net}")
    for failure in result.failed:
        field(f"employee {failure.employee_id}", f"FAILED {failure.reason_code}: {failure.message}")
    for warning in result.warnings:
        field(f"employee {warning.employee_id}", f"WARNING {warning.code}: {warning.warning.message}")
    return 0 if result.is_complete else 2


def cmd_preview(args, settings) -> int:
    from payroll_kernel.db.engine import get_session_factory, session_scope
    from payroll_kernel.services.tax_preview_service import TaxPreviewService

    with session_scope(get_session_factory()) as session:
        resolution = TaxPreviewService(session, build_payroll_rules(settings)).preview(
            args.income
        )

    banner("TAX PREVIEW")
    field("income", money(resolution.income, settings))
    field("tax", money(resolution.tax, settings))
    field("bracket", resolution.bracket.title if resolution.bracket else "-")
    if resolution.warning is not None:
        field("warning", f"{resolution.warning.code.value}: {resolution.warning.message}")
    return 0


def cmd_summary(args, settings) -> int:
    from payroll_kernel.db.engine import get_session_factory, session_scope
    from payroll_kernel.selectors.salary_slip_selector import SalarySlipSelector

    period = Period.parse(args.period)
    with session_scope(get_session_factory()) as session:
        selector = SalarySlipSelector(session)
        summary = selector.period_summary(period)
        ytd = selector.year_to_date(period.year)

    for title, totals in (
        (f"PAYROLL SUMMARY {summary.period}", summary),
        (f"YEAR TO DATE {ytd.year}", ytd),
    ):
        banner(title)
        field("slips", totals.slip_count)
        field("paid", totals.paid_count)
        field("pending", totals.pending_count)
        field("cancelled", totals.cancelled_count)
        field("total earnings", money(totals.total_earnings, settings))
        field("total deductions", money(totals.total_deductions, settings))
        field("total net payable", money(totals.total_net_payable, settings))
    return 0


def cmd_pay(args, settings) -> int:
    from payroll_kernel.db.engine import get_session_factory, session_scope
    from payroll_kernel.services.slip_status_service import SalarySlipStatusService

    with session_scope(get_session_factory()) as session:
        result = SalarySlipStatusService(session).mark_paid_many(
            args.slip_id,
            payment_method=args.method,
            payment_reference=args.reference,
        )

    banner("MARK PAID")
    field("result", f"{result.paid_count} of {len(result.requested_slip_ids)} slips paid")
    for slip in result.paid:
        field(f"slip {slip.id}", f"{slip.slip_reference}  {money(slip.net_payable, settings)}")
    for failure in result.failed:
        field(f"slip {failure.slip_id}", f"FAILED {failure.reason_code}: {failure.message}")
    return 0 if result.is_complete else 2


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate salary slips and inspect payroll.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python3 scripts/run_payroll.py run --period 2024-03 --all-active\n"
            "  python3 scripts/run_payroll.py preview --income 1200\n"
        ),
    )
    parser.add_argument("--config", type=str, default=None,
                        help="Path to a payroll settings YAML file")
    parser.add_argument("--db-url", type=str, default=None,
                        help="Database URL (overrides configuration)")
    parser.add_argument("--verbose", action="store_true",
                        help="Emit structured JSON logs to stderr")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create payroll tables")

    run = sub.add_parser("run", help="Generate salary slips for a period")
    run.add_argument("--period", required=True, help="Salary period, YYYY-MM")
    targets = run.add_mutually_exclusive_group(required=True)
    targets.add_argument("--employee-id", type=int, action="append",
                         help="Employee id (repeatable)")
    targets.add_argument("--all-active", action="store_true",
                         help="Every active employee")
    run.add_argument("--json", action="store_true", help="Print the result as JSON")

    preview = sub.add_parser("preview", help="Preview tax for an income")
    preview.add_argument("--income", required=True, help="Income amount")

    summary = sub.add_parser("summary", help="Summarize a salary period")
    summary.add_argument("--period", required=True, help="Salary period, YYYY-MM")

    pay = sub.add_parser("pay", help="Mark generated slips as paid")
    pay.add_argument("--slip-id", type=int, action="append", required=True,
                     help="Salary slip id (repeatable)")
    pay.add_argument("--method", default=None, help="Payment method, e.g. bank_transfer")
    pay.add_argument("--reference", default=None, help="Payment reference")

    return parser


COMMANDS = {
    "init-db": cmd_init_db,
    "run": cmd_run,
    "preview": cmd_preview,
    "summary": cmd_summary,
    "pay": cmd_pay,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        configure_logging(level=logging.INFO)
    else:
        logging.disable(logging.CRITICAL)

    from payroll_kernel.db.engine import init_engine_from_url

    try:
        overrides = {"database_url": args.db_url} if args.db_url else None
        settings = get_active_config(args.config, overrides=overrides)
        init_engine_from_url(settings.database_url)
        return COMMANDS[args.command](args, settings)
    except (PayrollKernelError, ValueError, FileNotFoundError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
