"""Tests for TaxPreviewService and ReferenceDataLoader's tax table."""

from decimal import Decimal

from payroll_kernel.domain.dtos import PayrollRules, WarningCode
from payroll_kernel.selectors.salary_slip_selector import SalarySlipSelector
from payroll_kernel.services.reference_data_loader import ReferenceDataLoader
from payroll_kernel.services.tax_preview_service import TaxPreviewService


def test_preview_uses_stored_table(session, create_tax_bracket):
    create_tax_bracket("0", "2000", "10")
    create_tax_bracket("2001", "5000", "20", fixed_amount="200")

    resolution = TaxPreviewService(session).preview("3001")

    assert resolution.tax == Decimal("400.00")
    assert resolution.bracket.income_from == Decimal("2001")


def test_preview_persists_nothing(session, create_tax_bracket):
    create_tax_bracket("0", "2000", "10")

    TaxPreviewService(session).preview(Decimal("1200"))

    assert SalarySlipSelector(session).list_slips() == []


def test_preview_reports_unresolved(session, create_tax_bracket):
    create_tax_bracket("0", "2000", "10")

    resolution = TaxPreviewService(session).preview("9000")

    assert resolution.tax == Decimal("0.00")
    assert resolution.warning.code is WarningCode.TAX_BRACKET_UNRESOLVED


def test_preview_respects_decimal_places(session, create_tax_bracket):
    create_tax_bracket("0", "2000", "12.5")

    resolution = TaxPreviewService(session, PayrollRules(decimal_places=0)).preview("101")

    # 101 * 12.5% = 12.625
    assert resolution.tax == Decimal("13")


def test_loader_orders_and_filters_brackets(session, create_tax_bracket):
    first = create_tax_bracket("0", "1000", "5")
    create_tax_bracket("1001", "2000", "10", is_active=False)

    loader = ReferenceDataLoader(session)

    assert [b.id for b in loader.load_tax_brackets()] == [first.id, first.id + 1]
    assert [b.id for b in loader.load_tax_brackets(active_only=True)] == [first.id]
