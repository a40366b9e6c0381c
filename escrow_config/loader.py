"""
Configuration Loader (``escrow_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a validated
``LedgerConfig``.  Callers outside this package use
``escrow_config.get_active_config()`` instead.

Invariants enforced
-------------------
* Unknown keys are rejected, so a misspelt setting never silently falls
  back to its default.
* ``0 <= default_platform_fee_pct <= max_platform_fee_pct <= 10``.
* ``log_level`` names a standard logging level.
* ``compute_checksum`` produces a deterministic SHA-256 of the parsed
  settings.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ConfigValidationError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from escrow_config.schema import LedgerConfig
from escrow_kernel.domain.project import MAX_PLATFORM_FEE_PCT


class ConfigValidationError(ValueError):
    """A configuration value is missing, unknown or out of range."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration '{key}': {reason}")


_KNOWN_KEYS = frozenset(f.name for f in fields(LedgerConfig)) - {"checksum"}

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _require_int(data: dict[str, Any], key: str) -> int:
    value = data[key]
    # bool is an int subclass; "true" is not a percentage.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigValidationError(key, f"expected an integer, got {value!r}")
    return value


def parse_config(data: dict[str, Any] | None) -> LedgerConfig:
    """
    Validate a parsed YAML mapping and build a ``LedgerConfig``.

    Missing keys take the ``LedgerConfig`` defaults.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigValidationError("<root>", "expected a mapping")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigValidationError(unknown[0], "unknown configuration key")

    defaults = LedgerConfig()
    values: dict[str, Any] = {
        "default_platform_fee_pct": defaults.default_platform_fee_pct,
        "max_platform_fee_pct": defaults.max_platform_fee_pct,
        "database_url": defaults.database_url,
        "log_level": defaults.log_level,
    }
    values.update(data)

    max_fee = _require_int(values, "max_platform_fee_pct")
    if not 0 <= max_fee <= MAX_PLATFORM_FEE_PCT:
        raise ConfigValidationError(
            "max_platform_fee_pct",
            f"must be between 0 and {MAX_PLATFORM_FEE_PCT}",
        )

    default_fee = _require_int(values, "default_platform_fee_pct")
    if not 0 <= default_fee <= max_fee:
        raise ConfigValidationError(
            "default_platform_fee_pct",
            f"must be between 0 and max_platform_fee_pct ({max_fee})",
        )

    database_url = values["database_url"]
    if not isinstance(database_url, str) or not database_url.strip():
        raise ConfigValidationError("database_url", "must be a non-empty string")

    log_level = str(values["log_level"]).upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigValidationError("log_level", f"unknown level {values['log_level']!r}")

    normalized = {
        "default_platform_fee_pct": default_fee,
        "max_platform_fee_pct": max_fee,
        "database_url": database_url,
        "log_level": log_level,
    }
    return LedgerConfig(**normalized, checksum=compute_checksum(normalized))


def load_config_file(path: Path) -> LedgerConfig:
    """Read and validate one YAML configuration file."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return parse_config(data)


def log_level_number(config: LedgerConfig) -> int:
    return logging.getLevelName(config.log_level)
