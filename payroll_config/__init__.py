"""
payroll_config -- single public entrypoint for payroll configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration -- YAML-driven settings.  This package sits beside
    ``payroll_kernel``: the kernel never imports from ``payroll_config``;
    callers (the batch coordinator, scripts) pass settings in.

Resolution order:
    1. ``config_path`` argument, if given.
    2. ``PAYROLL_CONFIG`` environment variable, if set.
    3. ``payroll_config/defaults/payroll.yaml``.
    ``PAYROLL_DATABASE_URL`` overrides ``database_url``; explicit
    ``overrides`` (command-line flags) win over both.

Failure modes:
    - ``FileNotFoundError`` -- configuration file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PAYROLL_CONFIG_TRACE`` log entry carrying the config id and the
    checksum of the effective settings, tying each payroll run to the
    settings that governed it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from payroll_config.loader import apply_overrides, load_yaml_file, parse_settings
from payroll_config.schema import PayrollSettings
from payroll_kernel.domain.dtos import IncomeBasis

_logger = logging.getLogger("payroll_kernel.config")

CONFIG_PATH_ENV = "PAYROLL_CONFIG"

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "defaults" / "payroll.yaml"

__all__ = [
    "IncomeBasis",
    "PayrollSettings",
    "get_active_config",
]


def get_active_config(
    config_path: Path | str | None = None,
    env: dict[str, str] | None = None,
    overrides: dict[str, Any] | None = None,
) -> PayrollSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a settings YAML file.
        env: Environment mapping (defaults to ``os.environ``).
        overrides: Setting values that win over the file and the
            environment (command-line flags).

    Returns:
        Frozen PayrollSettings with its checksum populated.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If configuration validation fails.
    """
    env = dict(os.environ) if env is None else env

    if config_path is not None:
        path = Path(config_path)
    elif env.get(CONFIG_PATH_ENV):
        path = Path(env[CONFIG_PATH_ENV])
    else:
        path = _DEFAULT_CONFIG_FILE

    settings = parse_settings(load_yaml_file(path), env=env)
    if overrides:
        settings = apply_overrides(settings, overrides)

    _logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_path": str(path),
            "checksum": settings.checksum,
            "income_basis": settings.income_basis.value,
            "strict_tax_table": settings.strict_tax_table,
            "max_workers": settings.max_workers,
        },
    )

    return settings
