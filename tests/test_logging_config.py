"""Tests for structured logging and LogContext propagation."""

import contextvars
import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from payroll_kernel.logging_config import LogContext, StructuredFormatter, get_logger
from payroll_kernel.exceptions import DuplicateSlipError


def _format(record_logger, message, **kwargs):
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    record_logger.addHandler(handler)
    try:
        record_logger.info(message, **kwargs)
    finally:
        record_logger.removeHandler(handler)
    return json.loads(stream.getvalue())


def test_logger_namespace():
    assert get_logger("services.payroll_engine").name == "payroll_kernel.services.payroll_engine"


def test_json_line_with_extra_and_context():
    with LogContext.bind(run_id="run-1", employee_id=42):
        payload = _format(
            get_logger("test"), "slip_generated", extra={"net_payable": Decimal("10.50")},
        )

    assert payload["message"] == "slip_generated"
    assert payload["level"] == "INFO"
    assert payload["run_id"] == "run-1"
    assert payload["employee_id"] == "42"
    assert payload["net_payable"] == "10.50"


def test_bind_restores_previous_values():
    LogContext.set(period="2024-01")
    with LogContext.bind(period="2024-02"):
        assert LogContext.get_all()["period"] == "2024-02"
    assert LogContext.get_all()["period"] == "2024-01"


def test_bind_skips_none():
    with LogContext.bind(run_id=None, period="2024-05"):
        assert LogContext.get_all() == {"period": "2024-05"}


def test_unknown_context_field_rejected():
    with pytest.raises(TypeError, match="actor_id"):
        with LogContext.bind(actor_id="hr-7"):
            pass
    assert LogContext.get_all() == {}


def test_context_copied_into_other_context():
    with LogContext.bind(run_id="run-9"):
        ctx = contextvars.copy_context()
    assert LogContext.get_all() == {}
    assert ctx.run(LogContext.get_all) == {"run_id": "run-9"}


def test_kernel_exception_fields_serialized():
    logger = get_logger("test")
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)
    try:
        try:
            raise DuplicateSlipError(3, "2024-03", "SLIP-2024-03-3-abcd1234")
        except DuplicateSlipError:
            logger.error("generation_failed", exc_info=True)
    finally:
        logger.removeHandler(handler)

    payload = json.loads(stream.getvalue())
    assert payload["exc_code"] == "DUPLICATE_SLIP"
    assert payload["exc_existing_reference"] == "SLIP-2024-03-3-abcd1234"
    assert "traceback" in payload
