"""
Configuration Loader (``payroll_config.loader``).

Responsibility
--------------
Loads a payroll settings YAML file and parses it into a frozen
``PayrollSettings``.  The single public entry point for runtime config is
``payroll_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown keys and invalid values raise ``ValueError``; nothing is
  silently defaulted once a key is present.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  effective settings, logged with every ``get_active_config()`` call.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import PayrollSettings
from payroll_kernel.domain.dtos import IncomeBasis

DATABASE_URL_ENV = "PAYROLL_DATABASE_URL"

_SETTINGS_KEYS = frozenset(
    f.name for f in fields(PayrollSettings) if f.name != "checksum"
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top of {path}")
    return data


def _require_int(data: dict[str, Any], key: str, minimum: int) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {value}")
    return value


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string, got {value!r}")
    return value


def parse_settings(
    data: dict[str, Any],
    env: dict[str, str] | None = None,
) -> PayrollSettings:
    """
    Parse a ``PayrollSettings`` from a dict, applying environment overrides.

    Accepts either a flat mapping or one nested under a ``payroll`` key.
    """
    section = data.get("payroll", data)
    if not isinstance(section, dict):
        raise ValueError("payroll section must be a mapping")

    unknown = set(section) - _SETTINGS_KEYS
    if unknown:
        raise ValueError(f"Unknown payroll settings: {sorted(unknown)}")

    values: dict[str, Any] = {}
    if "income_basis" in section:
        try:
            values["income_basis"] = IncomeBasis(section["income_basis"])
        except ValueError:
            raise ValueError(
                f"income_basis must be one of "
                f"{[b.value for b in IncomeBasis]}, got {section['income_basis']!r}"
            ) from None
    if "periods_per_year" in section:
        values["periods_per_year"] = _require_int(section, "periods_per_year", 1)
    if "decimal_places" in section:
        values["decimal_places"] = _require_int(section, "decimal_places", 0)
    if "max_workers" in section:
        values["max_workers"] = _require_int(section, "max_workers", 1)
    for key in ("currency", "income_tax_label", "slip_reference_prefix",
                "database_url", "config_id"):
        if key in section:
            values[key] = _require_str(section, key)
    if "strict_tax_table" in section:
        if not isinstance(section["strict_tax_table"], bool):
            raise ValueError(
                f"strict_tax_table must be a boolean, got {section['strict_tax_table']!r}"
            )
        values["strict_tax_table"] = section["strict_tax_table"]

    env = env or {}
    if env.get(DATABASE_URL_ENV):
        values["database_url"] = env[DATABASE_URL_ENV]

    settings = PayrollSettings(**values)
    return PayrollSettings(**{**values, "checksum": compute_checksum(settings_to_dict(settings))})


def settings_to_dict(settings: PayrollSettings) -> dict[str, Any]:
    """Plain dict of the effective settings, without the checksum."""
    data = {
        f.name: getattr(settings, f.name)
        for f in fields(PayrollSettings)
        if f.name != "checksum"
    }
    data["income_basis"] = settings.income_basis.value
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def apply_overrides(
    settings: PayrollSettings,
    overrides: dict[str, Any],
) -> PayrollSettings:
    """
    Settings with ``overrides`` applied, re-validated and re-checksummed.

    The checksum always describes the settings actually in effect, so an
    override (e.g. a command-line database URL) yields a new checksum.
    """
    return parse_settings({**settings_to_dict(settings), **overrides})
