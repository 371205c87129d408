"""Tests for slip reference construction and payload hashing."""

from datetime import datetime, timezone
from decimal import Decimal

from payroll_kernel.domain.period import Period
from payroll_kernel.domain.slip_reference import build_slip_reference
from payroll_kernel.utils.hashing import canonicalize_json, hash_payload, short_hash

GENERATED_AT = datetime(2024, 3, 28, 9, 0, tzinfo=timezone.utc)


def test_reference_format():
    reference = build_slip_reference(
        Period(2024, 3), 17, {"net_payable": Decimal("1030.00")}, GENERATED_AT,
    )

    prefix, year, month, employee, digest = reference.split("-")
    assert (prefix, year, month, employee) == ("SLIP", "2024", "03", "17")
    assert len(digest) == 8


def test_reference_changes_with_time_and_payload():
    period = Period(2024, 3)
    base = build_slip_reference(period, 1, {"net": "1"}, GENERATED_AT)

    assert base == build_slip_reference(period, 1, {"net": "1"}, GENERATED_AT)
    assert base != build_slip_reference(period, 1, {"net": "2"}, GENERATED_AT)
    assert base != build_slip_reference(
        period, 1, {"net": "1"}, GENERATED_AT.replace(second=1),
    )


def test_custom_prefix():
    reference = build_slip_reference(Period(2024, 3), 1, {}, GENERATED_AT, prefix="PAY")
    assert reference.startswith("PAY-2024-03-1-")


def test_canonical_json_is_order_and_scale_independent():
    a = canonicalize_json({"b": Decimal("1.50"), "a": [1, 2]})
    b = canonicalize_json({"a": [1, 2], "b": Decimal("1.5")})

    assert a == b
    assert hash_payload({"x": 1}) == hash_payload({"x": 1})
    assert short_hash({"x": 1}, length=12) == hash_payload({"x": 1})[:12]
